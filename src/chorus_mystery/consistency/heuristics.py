"""
Keyword heuristics for comparing two claims without a language model.

Claims are compared word by word: a contradiction needs one side of a
negation pair in each claim plus a shared content word, so both claims are
about the same topic. Whereabouts claims get their own rule, since "home
all night" and "seen at the docks" conflict without sharing any word.
"""

import re

# Opposed terms; a claim holding one side conflicts with a claim holding the other
NEGATION_PAIRS = [
    ("never", "always"),
    ("didn't", "did"),
    ("wasn't", "was"),
    ("innocent", "guilty"),
    ("alive", "dead"),
    ("truth", "lie"),
    ("friend", "enemy"),
    ("trust", "betray"),
]

NEGATION_WORDS = {"not", "no", "never", "cannot"}

# Phrases that claim someone stayed in one place for a stretch of time
EXCLUSIVE_PRESENCE = (
    "all night", "all evening", "all day", "all morning", "all afternoon",
    "never left", "the whole", "the entire",
)

LOCATION_PATTERN = re.compile(
    r"\b(?:at|in|inside|near|to|into)\s+"
    r"(?:the\s+|a\s+|an\s+|his\s+|her\s+|their\s+|my\s+|our\s+)?"
    r"([a-z][a-z']+)"
)

# Nouns that follow "at"/"in" but name a time or state, not a place
NON_LOCATIONS = {
    "night", "evening", "morning", "afternoon", "day", "dawn", "dusk",
    "dark", "time", "moment", "hour", "while", "first", "last", "least",
    "once", "all", "secret", "love", "debt", "trouble", "fact", "truth",
    "private", "public", "charge", "danger",
}

_TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def _normalize(text: str) -> str:
    return text.lower().replace("’", "'")


def tokenize(text: str) -> list[str]:
    """Split text into lowercase words, keeping contractions whole."""
    return _TOKEN_PATTERN.findall(_normalize(text))


def content_words(text: str) -> set[str]:
    """
    Topic-bearing words of a claim.

    Args:
        text: Claim text

    Returns:
        Lowercase words longer than three letters, contractions included
    """
    return {word for word in tokenize(text) if len(word) > 3}


def has_term(text: str, term: str) -> bool:
    """True if ``term`` appears as a whole word or phrase in ``text``."""
    pattern = r"(?<![\w'])" + re.escape(term) + r"(?![\w'])"
    return re.search(pattern, _normalize(text)) is not None


def is_negated(text: str) -> bool:
    """True if the claim carries a negation word or an n't contraction."""
    return any(
        word in NEGATION_WORDS or word.endswith("n't")
        for word in tokenize(text)
    )


def locations(text: str) -> set[str]:
    """Places a claim puts its subject in."""
    normalized = _normalize(text)
    found = {
        match for match in LOCATION_PATTERN.findall(normalized)
        if match not in NON_LOCATIONS
    }
    if has_term(normalized, "home"):
        found.add("home")
    return found


def is_exclusive_presence(text: str) -> bool:
    """True if the claim says the subject stayed put for a stretch of time."""
    return any(has_term(text, phrase) for phrase in EXCLUSIVE_PRESENCE)


def whereabouts_conflict(claim_a: str, claim_b: str) -> bool:
    """
    Check for an alibi clash between two claims.

    One claim must pin the subject to a place for a stretch of time, and
    the other must place them somewhere else.

    Args:
        claim_a: First claim
        claim_b: Second claim

    Returns:
        True if the claims put the subject in different places
    """
    if not (is_exclusive_presence(claim_a) or is_exclusive_presence(claim_b)):
        return False

    places_a = locations(claim_a)
    places_b = locations(claim_b)
    return bool(places_a) and bool(places_b) and places_a.isdisjoint(places_b)


def _negation_conflict(claim_a: str, claim_b: str) -> bool:
    for first, second in NEGATION_PAIRS:
        if (has_term(claim_a, first) and has_term(claim_b, second)) or (
            has_term(claim_a, second) and has_term(claim_b, first)
        ):
            return True

    # Generic negation: "was not at the docks" against "was at the docks"
    return is_negated(claim_a) != is_negated(claim_b)


def claims_contradict(claim_a: str, claim_b: str) -> bool:
    """
    Decide whether two claims about the same subject conflict.

    Args:
        claim_a: First claim
        claim_b: Second claim

    Returns:
        True if the claims seem to contradict
    """
    shared = content_words(claim_a) & content_words(claim_b)
    if shared and _negation_conflict(claim_a, claim_b):
        return True

    return whereabouts_conflict(claim_a, claim_b)


def claims_corroborate(claim_a: str, claim_b: str) -> bool:
    """
    Decide whether two claims say substantially the same thing.

    Corroboration means more than half of the shorter claim's content words
    appear in the other claim.

    Args:
        claim_a: First claim
        claim_b: Second claim

    Returns:
        True if the claims agree
    """
    words_a = content_words(claim_a)
    words_b = content_words(claim_b)
    if not words_a or not words_b:
        return False

    overlap = words_a & words_b
    return len(overlap) / min(len(words_a), len(words_b)) > 0.5


__all__ = [
    "NEGATION_PAIRS",
    "tokenize",
    "content_words",
    "has_term",
    "is_negated",
    "locations",
    "whereabouts_conflict",
    "claims_contradict",
    "claims_corroborate",
]
