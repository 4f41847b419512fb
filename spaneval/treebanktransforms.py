"""Rewrite the tags and words of bracketed trees with an ordered list of rules.

A rule is a pure function of a single token. :py:class:`FilterPipeline`
applies rules to the text of a tree, leaving parentheses and spacing as they
are; :py:func:`applyrules` applies the same rules to a tree in memory. Named
presets for common relabelings are in ``RULES``.

>>> pipeline = FilterPipeline(getrules('remove-verb-subcategories'))
>>> pipeline.apply('(S (V_fin dorme)  (ADV bem))')
'(S (V dorme)  (ADV bem))'
"""
import re
from .tree import Category, PartOfSpeech, Sentence, symbols, SYMBOL

TAG, WORD = 'tag', 'word'


class Rule(object):
	"""Base class for rewrite rules.

	Subclasses declare which kinds of token they rewrite with the
	``supportstag`` and ``supportsword`` attributes, and override the
	corresponding method."""
	supportstag = False
	supportsword = False

	def tag(self, tag):
		"""Return a replacement for a tag."""
		return tag

	def word(self, word):
		"""Return a replacement for a word."""
		return word

	def __repr__(self):
		return '%s()' % self.__class__.__name__


class TagRule(Rule):
	"""Substitute a regular expression in tags.

	>>> TagRule(r'^N_.*$', 'N').tag('N_prop')
	'N'"""
	supportstag = True

	def __init__(self, pattern, replacement):
		self.pattern = re.compile(pattern)
		self.replacement = replacement

	def tag(self, tag):
		return self.pattern.sub(self.replacement, tag)

	def __repr__(self):
		return '%s(%r, %r)' % (self.__class__.__name__,
				self.pattern.pattern, self.replacement)


class WordRule(TagRule):
	"""Substitute a regular expression in words."""
	supportstag = False
	supportsword = True

	def tag(self, tag):
		return tag

	def word(self, word):
		return self.pattern.sub(self.replacement, word)


class LowercaseRule(Rule):
	"""Convert words to lowercase."""
	supportsword = True

	def word(self, word):
		return word.lower()


class IdentityRule(Rule):
	"""Leave every token as is."""
	supportstag = supportsword = True


RULES = {
		'remove-tag-hyphen': TagRule(r'(\w)-(\w)', r'\1\2'),
		'remove-verb-subcategories': TagRule(r'^V_.*$', 'V'),
		'remove-noun-subcategories': TagRule(r'^N_.*$', 'N'),
		'remove-conj-subcategories': TagRule(r'^CONJ_.*$', 'CONJ'),
		'remove-pron-subcategories': TagRule(r'^PRON_.*$', 'PRON'),
		'lowercase-words': LowercaseRule(),
		'identity': IdentityRule(),
}


def getrules(names):
	"""Look up rules by name.

	:param names: a sequence of names, or a string with comma-separated names.
	:returns: a list of rules in the given order."""
	if isinstance(names, str):
		names = [a.strip() for a in names.split(',') if a.strip()]
	try:
		return [RULES[name] for name in names]
	except KeyError as err:
		raise ValueError('unrecognized rule %s; choose from: %s' % (
				err, ', '.join(sorted(RULES))))


class FilterPipeline(object):
	"""Apply an ordered list of rules to each tag and word of a tree.

	:param rules: a sequence of :py:class:`Rule` objects; rules are applied
		in order, each to the output of the previous one."""

	def __init__(self, rules=()):
		self.rules = list(rules)

	def rewrite(self, token, kind):
		"""Apply all rules for ``kind`` (``'tag'`` or ``'word'``) to a token."""
		for rule in self.rules:
			if kind == TAG and rule.supportstag:
				token = rule.tag(token)
			elif kind == WORD and rule.supportsword:
				token = rule.word(token)
		return token

	def tokens(self, text):
		"""Generate ``(kind, start, end)`` for each tag and word in ``text``.

		A tag is the first symbol after an opening parenthesis.

		>>> list(FilterPipeline().tokens('(NP (N-P a))'))
		[('tag', 1, 3), ('tag', 5, 8), ('word', 9, 10)]"""
		prev = None
		for token in symbols(text):
			if token.kind == SYMBOL:
				yield TAG if prev == '(' else WORD, token.start, token.end
			prev = token.kind

	def apply(self, text):
		"""Return ``text`` with its tags and words rewritten.

		The replacements are spliced in from left to right; the offset keeps
		track of the difference in length so far.

		>>> FilterPipeline(getrules('remove-tag-hyphen,lowercase-words')
		...		).apply('(S-X (V-fin Dorme))')
		'(SX (Vfin dorme))'"""
		if not self.rules:
			return text
		result, offset = text, 0
		for kind, start, end in self.tokens(text):
			token = text[start:end]
			replacement = self.rewrite(token, kind)
			if replacement != token:
				result = (result[:start + offset] + replacement
						+ result[end + offset:])
				offset += len(replacement) - len(token)
		return result

	def __repr__(self):
		return '%s(%r)' % (self.__class__.__name__, self.rules)


def applyrules(tree, rules):
	"""Return a copy of a tree with tags and words rewritten.

	:param tree: a node or a :py:class:`Sentence`; the result is of the same
		type. The ``extra`` attributes of leaves are copied.
	:param rules: a sequence of rules or a :py:class:`FilterPipeline`.

	>>> from spaneval.tree import parse
	>>> print(applyrules(parse('(S (N_prop Maria))'),
	...		getrules(['remove-noun-subcategories'])))
	(S (N Maria))"""
	if isinstance(tree, Sentence):
		return Sentence(applyrules(tree.root, rules))
	pipeline = (rules if isinstance(rules, FilterPipeline)
			else FilterPipeline(rules))
	done = []  # converted nodes, children before their parents
	agenda = [(tree, False)]
	while agenda:
		node, expanded = agenda.pop()
		if isinstance(node, PartOfSpeech):
			done.append(PartOfSpeech(pipeline.rewrite(node.tag, TAG),
					pipeline.rewrite(node.word, WORD), node.extra))
		elif expanded:
			children = done[len(done) - len(node.children):]
			del done[len(done) - len(node.children):]
			done.append(Category(pipeline.rewrite(node.tag, TAG), children))
		else:
			agenda.append((node, True))
			agenda.extend((child, False) for child in reversed(node.children))
	return done[0]


__all__ = ['Rule', 'TagRule', 'WordRule', 'LowercaseRule', 'IdentityRule',
		'RULES', 'getrules', 'FilterPipeline', 'applyrules']
