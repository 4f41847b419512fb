"""Span-based evaluation of constituency parse trees (spaneval).

Main components:

- A reader for trees in bracket notation, indexing every node by the span of
  terminals it covers.
- Confusion matrices of part-of-speech tags and phrasal categories, with
  phrasal categories of gold and parsed trees aligned on their spans.
- Rewriting of tags and words with ordered lists of rules, and conversion of
  a treebank to the formats used for training and parsing.
"""
__version__ = '0.1.0'
