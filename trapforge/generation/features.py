"""Structural scan of contract source for known protective idioms."""

import re
from typing import List, Pattern, Tuple

# (feature label, patterns); a feature is reported when any pattern matches.
FEATURE_PATTERNS: List[Tuple[str, Tuple[Pattern[str], ...]]] = [
    (
        "Reentrancy Guard",
        (re.compile(r"\bnonReentrant\b"), re.compile(r"\bReentrancyGuard\b")),
    ),
    (
        "Access Control",
        (re.compile(r"\bonlyOwner\b"), re.compile(r"\bAccessControl\b")),
    ),
    ("Input Validation", (re.compile(r"\brequire\s*\("), re.compile(r"\brevert\s+\w+\s*\("))),
    ("Event Logging", (re.compile(r"\bemit\s+\w+\s*\("),)),
    ("Emergency Pause", (re.compile(r"\bwhenNotPaused\b"), re.compile(r"\bPausable\b"))),
]

DEFAULT_FEATURES = ["Basic Protection", "Monitoring"]


def detect_security_features(source: str) -> List[str]:
    """Return the protective idioms present in ``source``, in table order.

    Falls back to a minimal default set when none are recognized.
    """
    features = [
        label
        for label, patterns in FEATURE_PATTERNS
        if any(pattern.search(source) for pattern in patterns)
    ]
    return features or list(DEFAULT_FEATURES)
