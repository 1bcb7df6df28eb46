"""Multi-keyword substring matching with an Aho-Corasick automaton.

The automaton is built once from groups of keywords (e.g. ``{"ai": [...],
"real": [...]}``) and then scans a text in a single pass, reporting every
keyword that occurs anywhere in it together with its group tag.

Usage:
    from realcheck.matcher import KeywordMatcher

    matcher = KeywordMatcher({"ai": ["digital art"], "real": ["sky"]})
    matcher.tags("digital art of the sky")  # frozenset({"ai", "real"})
"""

from collections import deque


class KeywordMatcher:
    """Aho-Corasick automaton over lower-cased keywords.

    Args:
        groups: Mapping of tag -> iterable of keywords. Keywords are
            lower-cased; empty keywords are rejected.
    """

    def __init__(self, groups):
        self._goto = [{}]
        self._fail = [0]
        self._out = [[]]
        self.groups = {}

        for tag, keywords in groups.items():
            words = []
            for keyword in keywords:
                keyword = str(keyword).strip().lower()
                if not keyword:
                    raise ValueError(f"Empty keyword in group '{tag}'")
                self._insert(keyword, tag)
                words.append(keyword)
            self.groups[tag] = frozenset(words)

        self._build_failure_links()

    def _insert(self, keyword, tag):
        node = 0
        for ch in keyword:
            nxt = self._goto[node].get(ch)
            if nxt is None:
                nxt = len(self._goto)
                self._goto[node][ch] = nxt
                self._goto.append({})
                self._fail.append(0)
                self._out.append([])
            node = nxt
        if (keyword, tag) not in self._out[node]:
            self._out[node].append((keyword, tag))

    def _build_failure_links(self):
        # BFS so every node's fail target is resolved before its children
        queue = deque(self._goto[0].values())
        while queue:
            node = queue.popleft()
            for ch, child in self._goto[node].items():
                queue.append(child)
                f = self._fail[node]
                while f and ch not in self._goto[f]:
                    f = self._fail[f]
                target = self._goto[f].get(ch, 0)
                self._fail[child] = target if target != child else 0
                self._out[child] = self._out[child] + self._out[self._fail[child]]

    def find(self, text):
        """Return every ``(keyword, tag)`` occurring in ``text``.

        Each pair is reported once, in order of first occurrence.
        """
        found = []
        seen = set()
        node = 0
        for ch in text.lower():
            while node and ch not in self._goto[node]:
                node = self._fail[node]
            node = self._goto[node].get(ch, 0)
            for hit in self._out[node]:
                if hit not in seen:
                    seen.add(hit)
                    found.append(hit)
        return found

    def tags(self, text) -> frozenset:
        """Return the set of group tags with at least one keyword in ``text``."""
        return frozenset(tag for _, tag in self.find(text))

    def __len__(self):
        return sum(len(words) for words in self.groups.values())

    def __repr__(self):
        sizes = ", ".join(f"{tag}={len(words)}" for tag, words in self.groups.items())
        return f"KeywordMatcher({sizes})"
