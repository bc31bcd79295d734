import re

from devspace.models.guestbook import GuestbookStatus

SPAM_THRESHOLD = 0.7
REVIEW_THRESHOLD = 0.4

BLACKLIST = [
    "viagra", "casino", "crypto giveaway", "free money", "click here",
    "buy now", "earn cash", "work from home", "lottery", "porn",
]

LINK_RE = re.compile(r"(https?://|www\.)\S+", re.IGNORECASE)
REPEAT_RE = re.compile(r"(.)\1{6,}")


def spam_score(message: str) -> float:
    """Heuristic spam score in [0, 1] for a guestbook message"""
    text = message or ""
    lowered = text.lower()
    score = 0.0

    links = len(LINK_RE.findall(text))
    score += min(links * 0.2, 0.4)

    score += 0.3 * sum(1 for word in BLACKLIST if word in lowered)

    letters = [c for c in text if c.isalpha()]
    if len(letters) >= 10:
        upper_ratio = sum(1 for c in letters if c.isupper()) / len(letters)
        if upper_ratio > 0.6:
            score += 0.2

    if REPEAT_RE.search(text):
        score += 0.1

    if links and len(LINK_RE.sub("", text).strip()) < 20:
        score += 0.2

    return round(min(score, 1.0), 2)


def classify(message: str):
    """Return (status, is_spam, score) for a freshly posted message"""
    score = spam_score(message)
    if score >= SPAM_THRESHOLD:
        return GuestbookStatus.FLAGGED, True, score
    if score >= REVIEW_THRESHOLD:
        return GuestbookStatus.NEW, False, score
    return GuestbookStatus.APPROVED, False, score
