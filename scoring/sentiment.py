"""
Sentiment of issue and pull request bodies.
Uses the AFINN word list; the comparative score is the summed valence divided by the
number of tokens, so long and short texts land on the same scale.
"""
import re
import threading

from afinn import Afinn

_TOKEN_RE = re.compile(r"[a-z0-9']+")
_afinn = None
_afinn_lock = threading.Lock()


def _scorer() -> Afinn:
    global _afinn
    with _afinn_lock:
        if _afinn is None:
            _afinn = Afinn(language='en')
        return _afinn


def sentiment_score(text) -> float:
    """Return the AFINN comparative score of text, 0.0 for empty or missing text."""
    tokens = _TOKEN_RE.findall((text or '').lower())
    if not tokens:
        return 0.0
    return _scorer().score(' '.join(tokens)) / len(tokens)
