"""Record-to-subject linking: calendar fan-out and chat subject inference."""

from records.models import ChatTranscript, Subject


def parse_linked_subject_ids(linked: str | None) -> list[int]:
    """Parse "3, 7,abc,-1" into [3, 7].

    Order of first appearance is kept, duplicates collapse, and entries that
    are non-numeric or not positive are dropped silently.
    """
    if not linked or not isinstance(linked, str):
        return []

    ids: list[int] = []
    for token in linked.split(","):
        try:
            value = int(token.strip())
        except ValueError:
            continue
        if value > 0 and value not in ids:
            ids.append(value)
    return ids


def match_chat_subjects(chat: ChatTranscript, subjects: list[Subject]) -> list[int]:
    """Subjects whose name or company appears in the transcript (case-insensitive)."""
    text = chat.full_text().lower()
    matched = []
    for subject in subjects:
        name = (subject.name or "").lower()
        company = (subject.company or "").lower()
        if (name and name in text) or (company and company in text):
            matched.append(subject.id)
    return matched


def infer_chat_subjects(chat: ChatTranscript, subjects: list[Subject]) -> list[int]:
    """Best-effort subject guess for a transcript with no subject link.

    Heuristic, favoring recall: every name/company mention matches. With no
    mention at all, the user's first subject is used.
    """
    matched = match_chat_subjects(chat, subjects)
    if matched:
        return matched
    if subjects:
        return [min(subjects, key=lambda s: s.id).id]
    return []
