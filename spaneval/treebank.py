"""Read and write corpora of bracketed trees, one tree per line.

Besides the trees themselves ("gold" format), a corpus is written in the
"parseable" format that the external parser reads: the words of each
sentence between one pair of parentheses.

>>> line = '(S (NP (ART Um)  (N revivalismo)) (ADJP (ADJ refrescante)))'
>>> print(parseableline(line), end='')
(Um revivalismo refrescante)
"""
import os
import re
import logging
from glob import glob
from itertools import islice
from collections import OrderedDict
from .tree import Sentence, MalformedTreeError
from .util import openread, openwrite

SPACESRE = re.compile(r' {2,}')
# an opening parenthesis with its tag, or a closing parenthesis
BRACKETRE = re.compile(r'\(\S+|\)')


class BracketCorpusReader(object):
	"""Corpus reader for trees in bracket notation, one tree per line.

	For example::

		(S (NP (ART Um) (N revivalismo)) (ADJP (ADJ refrescante)))

	Sentences are numbered by line number, starting at 1; blank lines are
	skipped but counted.

	:param path: filename or pattern of corpus files; e.g., ``*.gold.txt``.
		Files matching a pattern are read in sorted order; ``-`` is stdin."""

	def __init__(self, path, encoding='utf8'):
		self._encoding = encoding
		self._filenames = sorted(glob(path)) if path != '-' else ['-']
		if not self._filenames:
			raise ValueError("no files matched pattern '%s' in %s" % (
					path, os.getcwd()))
		self._trees_cache = None

	def _read_blocks(self):
		"""Iterate over ``(n, line)`` for the non-blank lines of the corpus."""
		n = 0
		for filename in self._filenames:
			logging.debug('reading %s', filename)
			with openread(filename, encoding=self._encoding) as inp:
				for line in inp:
					n += 1
					if line.strip():
						yield n, line.rstrip('\r\n')

	def _parse(self, n, block):
		try:
			return Sentence.parse(block)
		except MalformedTreeError as err:
			raise MalformedTreeError('sentence %d: %s' % (n, err))

	def blocks(self):
		"""
		:returns: an ordered dictionary with the raw line of each tree."""
		return OrderedDict(self._read_blocks())

	def itertrees(self, start=None, end=None):
		"""
		:returns: an iterator over tuples ``(n, sentence)``, with
			:py:class:`Sentence` objects. Useful when the whole corpus would
			not fit in memory."""
		for n, block in islice(self._read_blocks(), start, end):
			yield n, self._parse(n, block)

	def trees(self):
		"""
		:returns: an ordered dictionary of :py:class:`Sentence` objects."""
		if self._trees_cache is None:
			self._trees_cache = OrderedDict(self.itertrees())
		return OrderedDict(self._trees_cache)

	def sents(self):
		"""
		:returns: an ordered dictionary of sentences,
			each sentence being a list of words."""
		return OrderedDict((n, a.words()) for n, a in self.trees().items())

	def tagged_sents(self):
		"""
		:returns: an ordered dictionary of tagged sentences,
			each tagged sentence being a list of (word, tag) pairs."""
		return OrderedDict((n, [(a.word, a.tag) for a in sent.pos()])
				for n, sent in self.trees().items())


def goldline(line):
	"""Return a tree in gold format: runs of spaces collapsed to one,
	ending with a newline.

	>>> goldline('(S  (N Maria)   (V dorme))')
	'(S (N Maria) (V dorme))\\n'"""
	if not line.endswith('\n'):
		line += '\n'
	return SPACESRE.sub(' ', line)


def parseableline(line):
	"""Return the words of a tree in parseable format: the words between
	one pair of parentheses, ending with a newline.

	>>> parseableline('(S (N Maria) (VP (V dorme)))\\n')
	'(Maria dorme)\\n'"""
	return '(%s)\n' % ' '.join(BRACKETRE.sub(' ', line).split())


def writetree(sent):
	"""Return a sentence in gold format."""
	return goldline(str(sent))


def writeformats(infile, goldfile, parseablefile, encoding='utf8'):
	"""Write the gold and parseable versions of a corpus.

	Blank lines are skipped.

	:returns: the number of sentences written."""
	numsents = 0
	with openread(infile, encoding=encoding) as inp, \
			openwrite(goldfile, encoding=encoding) as gold, \
			openwrite(parseablefile, encoding=encoding) as parseable:
		for line in inp:
			if not line.strip():
				continue
			gold.write(goldline(line.rstrip('\r\n')))
			parseable.write(parseableline(line))
			numsents += 1
	logging.info('wrote %d sentences to %s and %s',
			numsents, goldfile, parseablefile)
	return numsents


__all__ = ['BracketCorpusReader', 'goldline', 'parseableline', 'writetree',
		'writeformats']
