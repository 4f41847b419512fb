"""Constituency trees in bracket notation, indexed by terminal spans.

A tree such as ``(S (NP (ART Um) (N revivalismo)))`` is read into
:py:class:`Category` nodes (phrasal labels with children) and
:py:class:`PartOfSpeech` leaves (a tag with a word). A :py:class:`Sentence`
wraps the root node and assigns every node the half-open range of terminal
positions that it covers; the scoring code in :py:mod:`spaneval.eval`
compares trees through these spans.

>>> sent = Sentence.parse('(S (NP (ART Um) (N revivalismo)) (VP (V dorme)))')
>>> len(sent)
3
>>> [(str(span), [node.tag for node in nodes])
...		for span, nodes in sent.ranges()][-2:]
[('2-3', ['V', 'VP']), ('0-3', ['S'])]
"""
import re
from itertools import groupby
from operator import itemgetter
from collections import namedtuple

# a word is anything but whitespace, parentheses and hyphens;
# parentheses and hyphens are single-character tokens.
TOKENRE = re.compile(r'(?P<word>[^\s()-]+)|(?P<char>[()-])')
WORD, SYMBOL, END = 'WORD', 'SYMBOL', 'END'


class MalformedTreeError(ValueError):
	"""A string is not a well-formed tree in bracket notation."""


class Token(namedtuple('Token', ['kind', 'value', 'start', 'end'])):
	"""A token with its kind and half-open character offsets.

	``kind`` is one of ``WORD``, ``(``, ``)``, ``-`` or ``END``; after
	:py:func:`symbols` has joined adjacent words and hyphens, ``SYMBOL``."""
	__slots__ = ()


class Span(namedtuple('Span', ['start', 'end'])):
	"""A half-open range ``[start, end)`` of terminal positions.

	Spans are ordered by their start, then by their end:

	>>> sorted([Span(1, 2), Span(0, 3), Span(0, 1)])
	[Span(start=0, end=1), Span(start=0, end=3), Span(start=1, end=2)]
	>>> print(Span(1, 3))
	1-3"""
	__slots__ = ()

	def __str__(self):
		return '%d-%d' % (self.start, self.end)


TagRange = namedtuple('TagRange', ['span', 'tag'])


class Node(object):
	"""Base class of the two kinds of tree nodes.

	Nodes compare structurally; ``str()`` gives the bracket notation."""
	__slots__ = ()

	def __eq__(self, other):
		agenda = [(self, other)]
		while agenda:
			a, b = agenda.pop()
			if type(a) is not type(b) or a.tag != b.tag:
				return False
			elif isinstance(a, PartOfSpeech):
				if a.word != b.word:
					return False
			elif len(a.children) != len(b.children):
				return False
			else:
				agenda.extend(zip(a.children, b.children))
		return True

	def __ne__(self, other):
		return not self.__eq__(other)

	__hash__ = None

	def __str__(self):
		result = []
		agenda = [self]
		while agenda:
			node = agenda.pop()
			if isinstance(node, str):
				result.append(node)
			elif isinstance(node, PartOfSpeech):
				result.append('(%s %s)' % (node.tag, node.word))
			elif not node.children:
				result.append('(%s)' % node.tag)
			else:
				result.append('(%s ' % node.tag)
				agenda.append(')')
				for n, child in enumerate(reversed(node.children)):
					if n:
						agenda.append(' ')
					agenda.append(child)
		return ''.join(result)

	def pprint(self):
		"""Return an indented representation with one node per line.

		>>> print(parse('(S (NP (ART Um) (N revivalismo)) (VP))').pprint())
		(S
		  (NP
		    (ART Um)
		    (N revivalismo))
		  (VP))"""
		lines = []
		# (node, depth, number of closing parentheses after this node)
		agenda = [(self, 0, 0)]
		while agenda:
			node, depth, closing = agenda.pop()
			if isinstance(node, PartOfSpeech) or not node.children:
				lines.append('%s%s%s' % ('  ' * depth, node, ')' * closing))
				continue
			lines.append('%s(%s' % ('  ' * depth, node.tag))
			last = len(node.children) - 1
			for n in range(last, -1, -1):
				agenda.append((node.children[n], depth + 1,
						closing + 1 if n == last else 0))
		return '\n'.join(lines)


class Category(Node):
	"""A phrasal node: a tag with an ordered list of children.

	A category without children occupies a terminal position of its own."""
	__slots__ = ('tag', 'children')

	def __init__(self, tag, children=None):
		self.tag = tag
		self.children = [] if children is None else list(children)

	def __repr__(self):
		return '%s(%r, %r)' % (self.__class__.__name__, self.tag,
				self.children)


class PartOfSpeech(Node):
	"""A leaf: a part-of-speech tag with its word.

	:param extra: auxiliary attributes such as a lemma; not part of the
		bracket notation and ignored when comparing nodes."""
	__slots__ = ('tag', 'word', 'extra')

	def __init__(self, tag, word, extra=None):
		self.tag = tag
		self.word = word
		self.extra = {} if extra is None else dict(extra)

	def __repr__(self):
		return '%s(%r, %r)' % (self.__class__.__name__, self.tag, self.word)


def tokenize(text):
	"""Lazily split a tree in bracket notation into tokens.

	Whitespace is skipped; the last token always has kind ``END``.

	>>> [a.value for a in tokenize('(NP-SBJ  (N a))')]
	['(', 'NP', '-', 'SBJ', '(', 'N', 'a', ')', ')', '']"""
	for match in TOKENRE.finditer(text):
		token = match.group()
		kind = WORD if match.lastgroup == 'word' else token
		yield Token(kind, token, match.start(), match.end())
	yield Token(END, '', len(text), len(text))


def symbols(text):
	"""Tokenize and join directly adjacent words and hyphens into symbols.

	>>> [a.value for a in symbols('(-NONE- guarda-chuva)')]
	['(', '-NONE-', 'guarda-chuva', ')', '']"""
	pending = None
	for token in tokenize(text):
		if token.kind in (WORD, '-'):
			if pending is not None and pending.end == token.start:
				pending = Token(SYMBOL, pending.value + token.value,
						pending.start, token.end)
				continue
			if pending is not None:
				yield pending
			pending = Token(SYMBOL, token.value, token.start, token.end)
		else:
			if pending is not None:
				yield pending
				pending = None
			yield token


def parse(text):
	"""Parse a single tree in bracket notation and return its root node.

	A node with a single word is a :py:class:`PartOfSpeech`; other nodes are
	a :py:class:`Category`.

	>>> parse('(N Maria)')
	PartOfSpeech('N', 'Maria')
	>>> print(parse('(S  (NP (N Maria))   (VP))'))
	(S (NP (N Maria)) (VP))

	:raises MalformedTreeError: for unbalanced parentheses, a missing tag,
		truncated input, or text after the tree."""
	root = None
	stack = []  # open nodes as [tag, children], with children Node or Token
	expecttag = False
	for token in symbols(text):
		if expecttag:
			if token.kind != SYMBOL:
				_parseerror(text, token, 'a tag')
			stack[-1][0] = token.value
			expecttag = False
		elif token.kind == '(':
			if root is not None:
				_parseerror(text, token, 'end of input')
			stack.append([None, []])
			expecttag = True
		elif token.kind == ')':
			if not stack:
				_parseerror(text, token, "'('")
			tag, children = stack.pop()
			node = _makenode(text, tag, children)
			if stack:
				stack[-1][1].append(node)
			else:
				root = node
		elif token.kind == SYMBOL:
			if not stack:
				_parseerror(text, token,
						"'('" if root is None else 'end of input')
			stack[-1][1].append(token)
		elif stack:  # END
			_parseerror(text, token, "')'")
		elif root is None:
			_parseerror(text, token, "'('")
	return root


def _makenode(text, tag, children):
	"""Build a node from a tag and a list of subtrees and word tokens."""
	words = [a for a in children if isinstance(a, Token)]
	if not words:
		return Category(tag, children)
	elif len(children) == 1:
		return PartOfSpeech(tag, words[0].value)
	offending = children[1] if isinstance(children[0], Token) else words[0]
	_parseerror(text, offending, 'a word to be the only child of %r' % tag)


def _parseerror(text, token, expecting):
	"""Raise an error showing where parsing ``text`` failed.

	:param token: the offending token, or a node when a subtree is out of
		place (then no position is known)."""
	if isinstance(token, Token):
		pos = token.start
		got = 'end of input' if token.kind == END else repr(token.value)
	else:
		pos, got = None, repr(str(token))
	msg = 'expected %s but got %s' % (expecting, got)
	if pos is None:
		raise MalformedTreeError('%s.\n%s' % (msg, text))
	msg += ' at index %d.' % pos
	# show the problem token in context
	s = text.replace('\n', ' ').replace('\t', ' ')
	offset = pos
	if len(s) > pos + 10:
		s = s[:pos + 10] + '...'
	if pos > 10:
		s = '...' + s[pos - 10:]
		offset = 13
	msg += '\n    "%s"\n    %s^' % (s, ' ' * (1 + offset))
	raise MalformedTreeError(msg)


class Sentence(object):
	"""A tree together with the terminal span of each of its nodes.

	Spans are assigned by a post-order walk: each terminal (a
	:py:class:`PartOfSpeech` or a childless :py:class:`Category`) takes the
	position after its predecessor, and a phrasal node spans from its first to
	its last child. The sentence must not be modified after construction; to
	change the tree, construct a new ``Sentence``.

	>>> sent = Sentence.parse('(S (NP (ART Um) (N revivalismo)) (VP))')
	>>> sent.span(sent.root)
	Span(start=0, end=3)
	>>> [node.tag for node in sent[0:2]]
	['NP']"""
	__slots__ = ('root', '_nodes', '_spans', '_index', '_length')

	def __init__(self, root):
		if not isinstance(root, Node):
			raise TypeError('expected a Category or PartOfSpeech, got %r'
					% type(root))
		self.root = root
		self._nodes = []  # (node, span) in post-order
		self._spans = {}  # id(node) => span
		self._index = {}  # span => list of nodes
		position = 0
		agenda = [(root, False)]
		while agenda:
			node, expanded = agenda.pop()
			if isinstance(node, Category) and node.children:
				if not expanded:
					agenda.append((node, True))
					agenda.extend((child, False)
							for child in reversed(node.children))
					continue
				# children are contiguous and in order
				span = Span(self._spans[id(node.children[0])].start,
						self._spans[id(node.children[-1])].end)
			else:
				span = Span(position, position + 1)
				position += 1
			self._nodes.append((node, span))
			self._spans[id(node)] = span
			self._index.setdefault(span, []).append(node)
		self._length = position

	@classmethod
	def parse(cls, text):
		"""Parse a tree in bracket notation and index it."""
		return cls(parse(text))

	def span(self, node):
		""":returns: the span of a node of this sentence."""
		try:
			return self._spans[id(node)]
		except KeyError:
			raise ValueError('node %r is not part of this sentence' % node)

	def lookup(self, span):
		""":returns: the list of nodes with exactly the given span, in
		post-order; e.g., a leaf precedes the unary nodes above it.

		>>> sent = Sentence.parse('(S (NP (N Maria)) (VP (V dorme)))')
		>>> [node.tag for node in sent.lookup((0, 1))]
		['N', 'NP']
		>>> sent.lookup((1, 3))
		[]"""
		return list(self._index.get(tuple(span), ()))

	def __getitem__(self, key):
		if not isinstance(key, slice) or key.step is not None:
			raise TypeError('index with a slice start:end')
		return self.lookup(Span(key.start, key.stop))

	def nodes(self):
		""":returns: a list of ``(node, span)`` tuples in post-order."""
		return list(self._nodes)

	def ranges(self):
		"""Generate ``(span, nodes)`` tuples, grouping the nodes with an
		identical span that follow each other in post-order."""
		for span, group in groupby(self._nodes, key=itemgetter(1)):
			yield span, [node for node, _ in group]

	def tagranges(self):
		""":returns: sorted list of ``TagRange(span, tag)`` tuples for the
		phrasal nodes; part-of-speech leaves are excluded.

		>>> sent = Sentence.parse('(S (VP (V dorme)) (ADVP (ADV bem)))')
		>>> [(str(span), tag) for span, tag in sent.tagranges()]
		[('0-1', 'VP'), ('0-2', 'S'), ('1-2', 'ADVP')]"""
		return sorted(TagRange(span, node.tag) for node, span in self._nodes
				if isinstance(node, Category))

	def pos(self):
		""":returns: the part-of-speech leaves from left to right."""
		return [node for node, _ in self._nodes
				if isinstance(node, PartOfSpeech)]

	def words(self):
		""":returns: the list of words."""
		return [node.word for node in self.pos()]

	def __len__(self):
		return self._length

	def __str__(self):
		return str(self.root)

	def __repr__(self):
		return '%s.parse(%r)' % (self.__class__.__name__, str(self.root))


def tosentence(obj):
	"""Return a :py:class:`Sentence` for a Sentence, a node or a string."""
	if isinstance(obj, Sentence):
		return obj
	elif isinstance(obj, Node):
		return Sentence(obj)
	return Sentence.parse(obj)


__all__ = ['MalformedTreeError', 'Token', 'Span', 'TagRange', 'Node',
		'Category', 'PartOfSpeech', 'Sentence', 'tokenize', 'symbols',
		'parse', 'tosentence']
