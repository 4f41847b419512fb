"""Command-line interfaces to modules."""
import logging
from sys import argv, stderr
from sys import exit as sysexit

COMMANDS = {
		'eval': 'Evaluate parse trees against gold trees with confusion '
			'matrices.',
		'filter': 'Rewrite the tags and words of a treebank with named rules.',
		'format': 'Write gold and parseable versions of a treebank.',
		'spans': 'Show the span and tag of each constituent.',
	}


def main():
	"""Expose command-line interfaces."""
	from os.path import basename
	thiscmd = basename(argv[0])
	if len(argv) == 2 and argv[1] in ('-v', '--version'):
		from spaneval import __version__
		print(__version__)
	elif len(argv) <= 1 or argv[1] not in COMMANDS:
		print('Usage: %s <command> [arguments]\n' % thiscmd, file=stderr)
		print('Command is one of:', file=stderr)
		for a, b in sorted(COMMANDS.items()):
			print('   %s  %s' % (a.ljust(15), b))
		print('for additional instructions issue: %s <command> --help'
			% thiscmd, file=stderr)
	else:
		cmd = argv[1]
		# use the CLI defined here, or default to the module's main function.
		try:
			func = globals()[cmd]
		except KeyError:
			func = getattr(__import__('spaneval.%s' % cmd,
					fromlist=['main']), 'main')
		func()


def filter():  # pylint: disable=redefined-builtin
	"""Rewrite the tags and words of trees with an ordered list of rules.
Usage: spaneval filter [input [output]] --rules=<names> [options]
where input and output are files with one tree per line; standard in/output
is used if not given.

Options:
  --rules=<names>  comma-separated names of rules, applied in the given order.
  --list           show the available rules and exit.
  --enc=<enc>      encoding of input and output [default: utf8].

Only tags and words are rewritten; parentheses and spacing are preserved."""
	from getopt import gnu_getopt, GetoptError
	from .treebanktransforms import RULES, FilterPipeline, getrules
	from .util import openread, openwrite
	try:
		opts, args = gnu_getopt(argv[2:], 'h', ('help', 'list', 'rules=',
				'enc='))
		if len(args) > 2:
			raise GetoptError('expected 0, 1, or 2 positional arguments')
		opts = dict(opts)
		if '--help' in opts or '-h' in opts:
			print(filter.__doc__)
			return
		elif '--list' in opts:
			for name, rule in sorted(RULES.items()):
				print('%s  %r' % (name.ljust(28), rule))
			return
		elif '--rules' not in opts:
			raise GetoptError('specify rules with --rules')
		pipeline = FilterPipeline(getrules(opts['--rules']))
	except (GetoptError, ValueError) as err:
		print('error:', err, file=stderr)
		print(filter.__doc__)
		sysexit(2)
	infilename = args[0] if len(args) >= 1 else '-'
	outfilename = args[1] if len(args) == 2 else '-'
	encoding = opts.get('--enc', 'utf8')
	logging.basicConfig(level=logging.INFO, format='%(message)s')
	numlines = 0
	with openread(infilename, encoding=encoding) as inp, \
			openwrite(outfilename, encoding=encoding) as out:
		for line in inp:
			out.write(pipeline.apply(line))
			numlines += 1
	logging.info('filtered %d lines with %r', numlines, pipeline)


def format():  # pylint: disable=redefined-builtin
	"""Write the gold and parseable versions of a treebank.
Usage: spaneval format <input> <gold-output> <parseable-output> [--enc=<enc>]

The gold version has one tree per line with runs of spaces collapsed; the
parseable version has only the words of each tree, e.g.:

    (Um revivalismo refrescante)

Blank lines are skipped."""
	from getopt import gnu_getopt, GetoptError
	from .treebank import writeformats
	try:
		opts, args = gnu_getopt(argv[2:], 'h', ('help', 'enc='))
		opts = dict(opts)
		if '--help' in opts or '-h' in opts:
			print(format.__doc__)
			return
		elif len(args) != 3:
			raise GetoptError('expected 3 positional arguments')
	except GetoptError as err:
		print('error:', err, file=stderr)
		print(format.__doc__)
		sysexit(2)
	logging.basicConfig(level=logging.INFO, format='%(message)s')
	writeformats(*args, encoding=opts.get('--enc', 'utf8'))


def spans():
	"""Show the span and tag of each constituent of each tree.
Usage: spaneval spans [input] [--pos] [--enc=<enc>]

For each sentence, prints its number and words, followed by one line per
constituent with its span of terminal positions and its tag, in sorted order.

Options:
  --pos            include part-of-speech tags."""
	from getopt import gnu_getopt, GetoptError
	from .tree import MalformedTreeError, PartOfSpeech
	from .treebank import BracketCorpusReader
	try:
		opts, args = gnu_getopt(argv[2:], 'h', ('help', 'pos', 'enc='))
		if len(args) > 1:
			raise GetoptError('expected 0 or 1 positional arguments')
	except GetoptError as err:
		print('error:', err, file=stderr)
		print(spans.__doc__)
		sysexit(2)
	opts = dict(opts)
	if '--help' in opts or '-h' in opts:
		print(spans.__doc__)
		return
	corpus = BracketCorpusReader(args[0] if args else '-',
			encoding=opts.get('--enc', 'utf8'))
	try:
		for n, sent in corpus.itertrees():
			print('%d: %s' % (n, ' '.join(sent.words())))
			ranges = sent.tagranges()
			if '--pos' in opts:
				ranges = sorted(ranges + [(span, node.tag)
						for node, span in sent.nodes()
						if isinstance(node, PartOfSpeech)])
			for span, tag in ranges:
				print('%s\t%s' % (span, tag))
	except MalformedTreeError as err:
		print('error:', err, file=stderr)
		sysexit(1)


__all__ = ['main', 'filter', 'format', 'spans']
