"""Confusion-matrix evaluation of parse trees against gold trees.

Part-of-speech tags are compared word by word. Phrasal categories are compared
by aligning the constituents of both trees on their spans: a gold constituent
without a counterpart in the parse is counted against the not-found label
``#NF#``, and so is a spurious constituent of the parse. The result for each
tag is a row of a confusion matrix (gold tag against parsed tag).

>>> gold = '(S (NP (ART Um) (N revivalismo)) (ADJP (ADJ refrescante)))'
>>> parsed = '(S (NP (ART Um) (N revivalismo) (ADJP (ADJ refrescante))))'
>>> matrix = CategoryConfusionMatrix()
>>> matrix.add(gold, parsed)
>>> [(expected, got) for expected, got, rate in matrix.cells() if rate]
[('#NF#', 'NP'), ('ADJP', 'ADJP'), ('NP', '#NF#'), ('S', 'S')]
"""
import io
import sys
import logging
from decimal import Decimal
from getopt import gnu_getopt, GetoptError
from itertools import zip_longest
from collections import defaultdict, namedtuple, Counter
import numpy as np
from .tree import TagRange, MalformedTreeError, tosentence
from .util import openread

SHORTUSAGE = 'Usage: spaneval eval <gold> <parses> [param] [options]'
NOTFOUND = '#NF#'

HEADER = '''
   Sentence          POS                    Categories
  ID Length  Correct  Accur.   Correct  Total  Accur.\
'''.splitlines()

PairResult = namedtuple('PairResult', ['n', 'pos', 'categories'])


class AlignmentError(ValueError):
	"""The gold and parsed sentences have a different number of terminals."""


class UnknownKeyError(KeyError):
	"""A key that was never stored in a confusion matrix."""


class ConfusionMatrix(object):
	"""Counts of (expected, got) pairs.

	>>> matrix = ConfusionMatrix()
	>>> matrix.store('N', 'N')
	>>> matrix.store('N', 'V')
	>>> matrix.correctness(), matrix.errorness()
	(Decimal('0.5'), Decimal('0.5'))
	>>> ConfusionMatrix().correctness()
	Decimal('NaN')

	When nothing has been stored, correctness and errorness are NaN."""

	def __init__(self):
		self.counts = defaultdict(Counter)  # expected => got => count
		self.expectedtotals = Counter()
		self.correct = self.total = 0
		self._keys = set()

	def store(self, expected, got):
		"""Count one occurrence of ``expected`` being assigned ``got``."""
		self.counts[expected][got] += 1
		self.expectedtotals[expected] += 1
		self.total += 1
		if expected == got:
			self.correct += 1
		self._keys.add(expected)
		self._keys.add(got)

	def update(self, other):
		"""Add the counts of another confusion matrix to this one."""
		for expected, row in other.counts.items():
			self.counts[expected].update(row)
		self.expectedtotals.update(other.expectedtotals)
		self.correct += other.correct
		self.total += other.total
		self._keys.update(other.keys())

	@property
	def empty(self):
		"""True when nothing has been stored."""
		return self.total == 0

	def correctness(self):
		""":returns: the fraction of pairs with ``expected == got``."""
		if not self.total:
			return Decimal('NaN')
		return Decimal(self.correct) / self.total

	def errorness(self):
		""":returns: ``1 - correctness()``."""
		return 1 - self.correctness()

	def get(self, expected, got):
		""":returns: the number of times ``expected`` was assigned ``got``.

		:raises UnknownKeyError: if either key was never stored."""
		for key in (expected, got):
			if key not in self._keys:
				raise UnknownKeyError(key)
		return self.counts[expected][got] if expected in self.counts else 0

	def keys(self):
		""":returns: a sorted list of all expected and got keys."""
		return sorted(self._keys)

	def rates(self):
		"""Counts normalized by the number of times each key was expected.

		:returns: a tuple ``(keys, rates)`` where ``rates[i, j]`` is the
			fraction of occurrences of expected key ``keys[i]`` that were
			assigned ``keys[j]``; a row is zero for a key that was never
			expected."""
		keys = self.keys()
		index = {key: n for n, key in enumerate(keys)}
		counts = np.zeros((len(keys), len(keys)), dtype=np.float64)
		for expected, row in self.counts.items():
			for got, cnt in row.items():
				counts[index[expected], index[got]] = cnt
		totals = np.array([self.expectedtotals[key] for key in keys],
				dtype=np.float64)[:, np.newaxis]
		rates = np.divide(counts, totals, out=np.zeros_like(counts),
				where=totals > 0)
		return keys, rates

	def cells(self):
		"""Generate ``(expected, got, rate)`` for every pair of known keys,
		in sorted order."""
		keys, rates = self.rates()
		for n, expected in enumerate(keys):
			for m, got in enumerate(keys):
				yield expected, got, float(rates[n, m])

	__iter__ = cells

	def table(self, width=6):
		"""Return a table with the rates as percentages; rows are expected
		keys, columns are got keys.

		>>> matrix = ConfusionMatrix()
		>>> matrix.store('N', 'N')
		>>> matrix.store('V', 'N')
		>>> print(matrix.table())
		TAG    |      N |      V
		N      | 100.00 |   0.00
		V      | 100.00 |   0.00"""
		keys, rates = self.rates()
		width = max([width] + [len(a) for a in keys])
		lines = [' | '.join(['TAG'.ljust(width)]
				+ [a.rjust(width) for a in keys])]
		for key, row in zip(keys, rates):
			lines.append(' | '.join([key.ljust(width)]
					+ ['%*.2f' % (width, 100 * a) for a in row]))
		return '\n'.join(lines)

	def __len__(self):
		return self.total

	def __repr__(self):
		return '<%s with %d keys, %d pairs>' % (
				self.__class__.__name__, len(self._keys), self.total)


class PartOfSpeechConfusionMatrix(ConfusionMatrix):
	"""Confusion matrix of the part-of-speech tags of two sentences.

	:param eqlabel: a mapping of tags to a representative tag of their
		equivalence class."""

	def __init__(self, eqlabel=None):
		super().__init__()
		self.eqlabel = eqlabel or {}

	def add(self, gold, parsed):
		"""Compare the tags of two sentences with the same words.

		For each gold tag, the parsed tag is the first node of the parse with
		the same span. Nothing is stored when the sentences do not align.

		:param gold, parsed: :py:class:`spaneval.tree.Sentence` objects,
			nodes, or strings in bracket notation.
		:raises AlignmentError: if the number of terminals differs."""
		gold, parsed = tosentence(gold), tosentence(parsed)
		if len(gold) != len(parsed):
			raise AlignmentError('terminal count mismatch: gold has %d, '
					'parse has %d.\ngold:  %s\nparse: %s' % (
					len(gold), len(parsed), gold, parsed))
		pairs = []
		for leaf in gold.pos():
			span = gold.span(leaf)
			nodes = parsed.lookup(span)
			if not nodes:
				raise AlignmentError('no node at span %s of parse: %s' % (
						span, parsed))
			pairs.append((self.eqlabel.get(leaf.tag, leaf.tag),
					self.eqlabel.get(nodes[0].tag, nodes[0].tag)))
		for expected, got in pairs:
			self.store(expected, got)


class CategoryConfusionMatrix(ConfusionMatrix):
	"""Confusion matrix of the phrasal categories of two trees.

	:param deletelabel: labels that are ignored on both sides.
	:param eqlabel: a mapping of labels to a representative label of their
		equivalence class."""

	def __init__(self, deletelabel=(), eqlabel=None):
		super().__init__()
		self.deletelabel = set(deletelabel)
		self.eqlabel = eqlabel or {}

	def tagranges(self, sent):
		""":returns: the sorted tag ranges of a sentence with deleted labels
		removed and equivalent labels replaced."""
		return sorted(TagRange(span, self.eqlabel.get(tag, tag))
				for span, tag in sent.tagranges()
				if tag not in self.deletelabel)

	def add(self, gold, parsed):
		"""Align the constituents of two trees and count the resulting pairs.

		:param gold, parsed: :py:class:`spaneval.tree.Sentence` objects,
			nodes, or strings in bracket notation."""
		for expected, got in align(self.tagranges(tosentence(gold)),
				self.tagranges(tosentence(parsed))):
			self.store(expected, got)


def align(goldranges, parsedranges):
	"""Pair the constituents of two trees by their spans.

	:param goldranges, parsedranges: sorted sequences of ``(span, tag)``.
	:returns: a list of ``(goldtag, parsedtag)`` pairs, with ``NOTFOUND`` for
		a constituent that has no counterpart on the other side.

	Where both trees have several constituents with the same span, equal tags
	are paired up first:

	>>> from spaneval.tree import Sentence
	>>> gold = Sentence.parse('(S (NP (N Maria)))').tagranges()
	>>> parsed = Sentence.parse('(S (N Maria))').tagranges()
	>>> align(gold, parsed)
	[('S', 'S'), ('NP', '#NF#')]"""
	gold, parsed = list(goldranges), list(parsedranges)
	result = []
	i = j = 0
	while i < len(gold) or j < len(parsed):
		if j >= len(parsed) or (i < len(gold)
				and gold[i].span < parsed[j].span):
			result.append((gold[i].tag, NOTFOUND))
			i += 1
		elif i >= len(gold) or parsed[j].span < gold[i].span:
			result.append((NOTFOUND, parsed[j].tag))
			j += 1
		elif gold[i].tag == parsed[j].tag:
			result.append((gold[i].tag, parsed[j].tag))
			i += 1
			j += 1
		elif gold[i].tag < parsed[j].tag:
			# look for the parsed tag further along in gold at this span
			k = _findtag(gold, i, parsed[j].tag)
			if k is None:
				result.append((gold[i].tag, parsed[j].tag))
				i += 1
				j += 1
			else:
				result.append((gold[k].tag, parsed[j].tag))
				del gold[k], parsed[j]
		else:
			k = _findtag(parsed, j, gold[i].tag)
			if k is None:
				result.append((gold[i].tag, parsed[j].tag))
				i += 1
				j += 1
			else:
				result.append((gold[i].tag, parsed[k].tag))
				del gold[i], parsed[k]
	return result


def _findtag(ranges, start, tag):
	"""Return the index of ``tag`` among the ranges with the same span as
	``ranges[start]``, or None. Relies on tags being sorted within a span."""
	span = ranges[start].span
	for k in range(start, len(ranges)):
		if ranges[k].span != span or ranges[k].tag > tag:
			break
		elif ranges[k].tag == tag:
			return k
	return None


class Evaluator(object):
	"""Incremental evaluator for pairs of gold and parsed trees.

	Pairs that cannot be parsed or aligned are recorded in ``failures`` and
	skipped; the evaluation is aborted when there are more than
	``param['MAX_ERROR']`` such failures.

	:param param: a dictionary of parameters, as read by ``readparam``."""

	def __init__(self, param):
		self.param = param
		self.pos = PartOfSpeechConfusionMatrix(eqlabel=param['EQ_LABEL'])
		self.categories = CategoryConfusionMatrix(
				deletelabel=param['DELETE_LABEL'],
				eqlabel=param['EQ_LABEL'])
		self.sentcount = 0
		self.maxlenseen = 0
		self.failures = []  # list of (n, exception)

	def add(self, n, gold, parsed):
		"""Add a pair of gold and parsed trees to the evaluation.

		:param n: a unique identifier for this sentence.
		:param gold, parsed: sentences, nodes, or strings in bracket notation.
		:returns: a ``PairResult`` with the confusion matrices of this pair,
			or None if the pair was skipped."""
		pos = PartOfSpeechConfusionMatrix(eqlabel=self.param['EQ_LABEL'])
		categories = CategoryConfusionMatrix(
				deletelabel=self.param['DELETE_LABEL'],
				eqlabel=self.param['EQ_LABEL'])
		try:
			gold, parsed = tosentence(gold), tosentence(parsed)
			if self.param['POS']:
				pos.add(gold, parsed)
		except (MalformedTreeError, AlignmentError) as err:
			self.failures.append((n, err))
			logging.warning('sentence %s skipped: %s', n, err)
			if len(self.failures) > self.param['MAX_ERROR']:
				raise ValueError('more than %d errors; aborting.' %
						self.param['MAX_ERROR']) from err
			return None
		if self.param['CATEGORY']:
			categories.add(gold, parsed)
		self.pos.update(pos)
		self.categories.update(categories)
		self.sentcount += 1
		self.maxlenseen = max(self.maxlenseen, len(gold))
		return PairResult(n, pos, categories)

	def breakdowns(self):
		""":returns: a string with the confusion matrices as tables."""
		msg = []
		if self.param['POS'] and not self.pos.empty:
			msg.extend(['', ' Part-of-speech tags (rows: gold, '
					'columns: parse; % of gold)', self.pos.table()])
		if self.param['CATEGORY'] and not self.categories.empty:
			msg.extend(['', ' Categories (rows: gold, columns: parse; '
					'%s: not found; %% of gold)' % NOTFOUND,
					self.categories.table()])
		return '\n'.join(msg)

	def summary(self):
		""":returns: a string with an overview of scores for all sentences."""
		msg = ['%s' % ' Summary '.center(35, '_'),
				'number of sentences:       %6d' % self.sentcount,
				'failed sentences:          %6d' % len(self.failures),
				'longest sentence:          %6d' % self.maxlenseen]
		if self.param['POS']:
			msg.extend([
					'pos correctness:           %s' % percentage(
						self.pos.correctness()),
					'pos errorness:             %s' % percentage(
						self.pos.errorness())])
		if self.param['CATEGORY']:
			msg.extend([
					'category correctness:      %s' % percentage(
						self.categories.correctness()),
					'category errorness:        %s' % percentage(
						self.categories.errorness())])
		return '\n'.join(msg)


def evaluate(goldfile, parsesfile, param, goldenc='utf8', parsesenc='utf8',
		callback=None, evaluator=None):
	"""Evaluate a file of parses against a file of gold trees.

	Both files contain one tree per line, in the same order; lines that are
	blank in both files are skipped, and so are blank lines at the end of
	either file.

	:param callback: if given, called with each ``PairResult``.
	:param evaluator: an :py:class:`Evaluator` to add the results to; by
		default, a new one is created with ``param``.
	:raises ValueError: if the files do not have the same number of lines,
		or when there are too many failures.
	:returns: the :py:class:`Evaluator` with the results."""
	if evaluator is None:
		evaluator = Evaluator(param)
	with openread(goldfile, encoding=goldenc) as golds, \
			openread(parsesfile, encoding=parsesenc) as parses:
		for n, (gold, parsed) in enumerate(zip_longest(golds, parses), 1):
			if gold is None or parsed is None:
				if not (gold or parsed).strip():
					continue
				raise ValueError('%r and %r do not have the same number of '
						'lines.' % (goldfile, parsesfile))
			if not gold.strip() and not parsed.strip():
				continue
			result = evaluator.add(n, gold, parsed)
			if result is not None and callback is not None:
				callback(result)
	logging.info('evaluated %d sentences; %d failed.',
			evaluator.sentcount, len(evaluator.failures))
	return evaluator


def main():
	"""Command line interface for evaluation."""
	flags = {'help', 'verbose', 'debug', 'quiet'}
	options = {'goldenc=', 'parsesenc=', 'maxerror='}
	try:
		opts, args = gnu_getopt(sys.argv[2:], 'h', flags | options)
	except GetoptError as err:
		print('error:', err, file=sys.stderr)
		print(SHORTUSAGE)
		sys.exit(2)
	opts = dict(opts)
	if '--help' in opts or '-h' in opts:
		print(SHORTUSAGE)
		return
	if len(args) < 2 or len(args) > 3:
		print('error: Wrong number of arguments.', file=sys.stderr)
		print(SHORTUSAGE)
		sys.exit(2)
	goldfile, parsesfile = args[:2]
	param = readparam(args[2] if len(args) == 3 else None)
	param['MAX_ERROR'] = int(opts.get('--maxerror', param['MAX_ERROR']))
	param['DEBUG'] = max(param['DEBUG'],
			int('--verbose' in opts), 2 * ('--debug' in opts))
	if '--quiet' in opts:
		param['DEBUG'] = -1
	logging.basicConfig(
			level=logging.DEBUG if param['DEBUG'] > 1
			else logging.WARNING if param['DEBUG'] < 0 else logging.INFO,
			format='%(message)s')
	logging.info('gold: %s\nparses: %s', goldfile, parsesfile)
	callback = None
	if param['DEBUG'] >= 1:
		for a in HEADER:
			print(a)
		print('', '_' * (len(HEADER[-1]) - 1))

		def callback(result):
			print(pairinfo(result))
	evaluator = Evaluator(param)
	try:
		evaluate(goldfile, parsesfile, param,
				goldenc=opts.get('--goldenc', 'utf8'),
				parsesenc=opts.get('--parsesenc', 'utf8'),
				callback=callback, evaluator=evaluator)
	except ValueError as err:
		print(evaluator.summary())
		printfailures(evaluator)
		print('error:', err, file=sys.stderr)
		sys.exit(1)
	if param['DEBUG'] != -1:
		print(evaluator.breakdowns())
		print()
	print(evaluator.summary())
	printfailures(evaluator)


def printfailures(evaluator):
	"""Print the first line of the error of each skipped sentence."""
	for n, err in evaluator.failures:
		print('sentence %s: %s' % (n, str(err).splitlines()[0]),
				file=sys.stderr)


def readparam(filename):
	"""Read an EVALB-style parameter file and return a dictionary.

	Each line has a key and a value; lines starting with ``#`` are comments.

	>>> param = readparam(None)
	>>> param['MAX_ERROR'], param['POS'], param['CATEGORY']
	(10, 1, 1)"""
	validkeysonce = ('DEBUG', 'MAX_ERROR', 'POS', 'CATEGORY')
	param = {'DEBUG': 0, 'MAX_ERROR': 10, 'POS': 1, 'CATEGORY': 1,
			'DELETE_LABEL': set(), 'EQ_LABEL': set()}
	seen = set()
	lines = []
	if filename:
		with io.open(filename, encoding='utf8') as inp:
			lines = inp.readlines()
	for a in lines:
		line = a.strip()
		if line and not line.startswith('#'):
			try:
				key, val = line.split(None, 1)
			except ValueError:
				raise ValueError('%s requires a value' % line)
			if key in validkeysonce:
				if key in seen:
					raise ValueError('cannot declare %s twice' % key)
				seen.add(key)
				param[key] = int(val)
			elif key == 'DELETE_LABEL':
				param[key].add(val)
			elif key == 'EQ_LABEL':
				# given as undirected pairs (A, B), (B, C), ...
				try:
					b, c = val.split()
				except ValueError:
					raise ValueError('%s requires two values' % key)
				param[key].add((b, c))
			else:
				raise ValueError('unrecognized parameter key: %s' % key)
	# from pairs [('A', 'B'), ('B', 'C')] to a mapping of all elements to
	# the representative of their class: {'A': 'A', 'B': 'A', 'C': 'A'}
	param['EQ_LABEL'] = {x: k
			for k, eqclass in transitiveclosure(param['EQ_LABEL']).items()
				for x in eqclass}
	return param


def transitiveclosure(eqpairs):
	"""Transitive closure of (undirected) EQ relations with DFS.

	Given a sequence of pairs denoting an equivalence relation,
	produce a dictionary with equivalence classes as values and
	arbitrary members of those classes as keys.

	>>> result = transitiveclosure({('A', 'B'), ('B', 'C')})
	>>> len(result)
	1
	>>> k, v = result.popitem()
	>>> k in ('A', 'B', 'C') and v == {'A', 'B', 'C'}
	True"""
	edges = defaultdict(set)
	for a, b in eqpairs:
		edges[a].add(b)
		edges[b].add(a)
	eqclasses = {}
	seen = set()
	for elem in set(edges):
		if elem in seen:
			continue
		eqclasses[elem] = set()
		agenda = edges.pop(elem)
		while agenda:
			eqelem = agenda.pop()
			seen.add(eqelem)
			eqclasses[elem].add(eqelem)
			agenda.update(edges[eqelem] - seen)
	return eqclasses


def pairinfo(result):
	"""Return one line with the scores of a single pair, as in the header
	printed by the command line."""
	return '%4s  %5d  %7d  %s   %7d  %5d  %s' % (
			result.n, len(result.pos), result.pos.correct,
			percentage(result.pos.correctness()),
			result.categories.correct, len(result.categories),
			percentage(result.categories.correctness()))


def percentage(value):
	"""Return a fraction as a 6-character percentage; NaN means no data.

	>>> percentage(Decimal('0.5')), percentage(Decimal('NaN'))
	(' 50.00', ' 0DIV!')"""
	if value.is_nan():
		return ' 0DIV!'
	return '%6.2f' % (100 * value)


__all__ = ['NOTFOUND', 'AlignmentError', 'UnknownKeyError',
		'ConfusionMatrix', 'PartOfSpeechConfusionMatrix',
		'CategoryConfusionMatrix', 'align', 'Evaluator', 'PairResult',
		'evaluate', 'main', 'readparam', 'transitiveclosure', 'pairinfo',
		'printfailures', 'percentage']
