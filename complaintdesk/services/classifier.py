from __future__ import annotations

from dataclasses import asdict, dataclass


SUMMARY_LIMIT = 100
SUMMARY_ELLIPSIS = "..."

DEFAULT_CATEGORY = "General"
DEFAULT_PRIORITY = "Low"
DEFAULT_EMOTION = "Calm"


@dataclass(frozen=True)
class Rule:
    label: str
    keywords: tuple[str, ...]

    def matches(self, lowered: str) -> bool:
        # Plain substring containment: "fees" also hits "fee", "classroom" hits "class".
        return any(keyword in lowered for keyword in self.keywords)


# Precedence is the tuple order; the first matching rule wins and labels never combine.
CATEGORY_RULES: tuple[Rule, ...] = (
    Rule("Hostel", ("hostel", "water", "room", "mess", "food")),
    Rule("Finance", ("fee", "fees", "payment", "refund", "scholarship")),
    Rule("Academics", ("exam", "marks", "grade", "result", "class", "lecture")),
    Rule("Administration", ("admin", "office", "document", "certificate", "permission")),
    Rule("Infrastructure", ("wifi", "internet", "network", "bus", "transport", "electricity")),
)

PRIORITY_RULES: tuple[Rule, ...] = (
    Rule("Critical", ("urgent", "immediately", "asap", "emergency")),
    Rule("High", ("delay", "problem", "issue", "not working", "failed")),
    Rule("Medium", ("request", "please", "kindly")),
)

EMOTION_RULES: tuple[Rule, ...] = (
    Rule("Angry", ("angry", "furious", "outraged")),
    Rule("Frustrated", ("frustrated", "irritated", "annoyed", "disappointed")),
    Rule("Disappointed", ("sad", "upset", "worried")),
    Rule("Satisfied", ("thank", "happy", "satisfied", "appreciate")),
)


@dataclass(frozen=True)
class ComplaintAnalysis:
    summary: str
    category: str
    priority: str
    emotion: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def first_match(rules: tuple[Rule, ...], lowered: str, default: str) -> str:
    for rule in rules:
        if rule.matches(lowered):
            return rule.label
    return default


def summarize(text: str) -> str:
    if len(text) > SUMMARY_LIMIT:
        return text[:SUMMARY_LIMIT] + SUMMARY_ELLIPSIS
    return text


def classify(text: str) -> ComplaintAnalysis:
    # Total and deterministic: any string (including empty) yields a full analysis.
    lowered = text.lower()
    return ComplaintAnalysis(
        summary=summarize(text),
        category=first_match(CATEGORY_RULES, lowered, DEFAULT_CATEGORY),
        priority=first_match(PRIORITY_RULES, lowered, DEFAULT_PRIORITY),
        emotion=first_match(EMOTION_RULES, lowered, DEFAULT_EMOTION),
    )


def classify_complaint(title: str, description: str) -> ComplaintAnalysis:
    # Stored complaints are classified on title and description together.
    return classify(f"{title} {description}".strip())
