"""Keyword predicates for ordered (predicate, result) rule tables."""

import re


def any_of(*words):
    """Predicate: lower-cased text contains at least one of the words."""
    return lambda text: any(w in text for w in words)


def all_of(*predicates):
    return lambda text: all(p(text) for p in predicates)


def first_match(rules, text, default=None):
    """Result of the first rule whose predicate accepts text."""
    for predicate, result in rules:
        if predicate(text):
            return result
    return default


def matches(pattern):
    """Predicate: regex search against the lower-cased text."""
    compiled = re.compile(pattern)
    return lambda text: compiled.search(text) is not None
