from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class ReplyTemplate:
    category: str
    keywords: tuple[str, ...]
    apology: str
    action: str
    timeline: str


_REPLY_TEMPLATES: tuple[ReplyTemplate, ...] = (
    ReplyTemplate(
        "Billing",
        ("billing", "payment", "charge", "refund", "money", "fee"),
        "We sincerely apologize for any billing inconvenience you've experienced.",
        "Our finance team will review your account and transaction history immediately.",
        "Billing issues are typically resolved within 24-48 hours.",
    ),
    ReplyTemplate(
        "Delivery",
        ("delivery", "shipping", "package", "order", "late", "arrived"),
        "We're truly sorry for the delivery issues you've faced.",
        "Our logistics team will track your order and provide an update shortly.",
        "You'll receive tracking information within 2-4 hours.",
    ),
    ReplyTemplate(
        "Product",
        ("product", "quality", "defect", "broken", "damaged", "not working"),
        "We apologize for the product quality issues you've encountered.",
        "Our quality assurance team will assess this and arrange a replacement or refund.",
        "Expect a response within 24 hours with resolution options.",
    ),
    ReplyTemplate(
        "Service",
        ("service", "staff", "rude", "behavior", "attitude", "customer service"),
        "We deeply apologize for the service experience that did not meet your expectations.",
        "This feedback will be shared with our management team for immediate review.",
        "A senior representative will contact you within 12 hours.",
    ),
    ReplyTemplate(
        "Technical",
        ("technical", "bug", "error", "crash", "not loading", "website", "app"),
        "We apologize for the technical difficulties you've experienced.",
        "Our tech team has been notified and will investigate the issue.",
        "Technical issues are prioritized and addressed within 6-12 hours.",
    ),
    ReplyTemplate(
        "Food",
        ("food", "meal", "taste", "cold", "hygiene", "restaurant"),
        "We sincerely apologize for the food-related issue you've experienced.",
        "Our quality team will review this with the kitchen staff immediately.",
        "You'll receive a resolution offer within 4 hours.",
    ),
    ReplyTemplate(
        "Safety",
        ("safety", "security", "dangerous", "threat", "emergency"),
        "We take your safety concern very seriously.",
        "This has been escalated to our safety team for immediate action.",
        "A safety officer will contact you within 1 hour.",
    ),
)

_GENERAL_TEMPLATE = ReplyTemplate(
    "General",
    (),
    "We sincerely apologize for any inconvenience you've experienced.",
    "Your complaint has been received and will be reviewed by our team.",
    "Expect a response within 24-48 hours.",
)

_CLOSING = "We value your feedback and are committed to resolving this promptly."
_TICKET_NOTE = (
    "Your complaint has been logged and assigned a tracking ID. "
    "You can monitor its progress in real-time from your dashboard."
)


@dataclass(frozen=True)
class AutoReply:
    category: str
    greeting: str
    apology: str
    action: str
    timeline: str
    closing: str
    ticket_note: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


def _select_template(lowered: str) -> ReplyTemplate:
    for template in _REPLY_TEMPLATES:
        if any(keyword in lowered for keyword in template.keywords):
            return template
    return _GENERAL_TEMPLATE


def build_auto_reply(title: str, description: str, user_name: str | None = None) -> AutoReply:
    # Acknowledgement shown to the submitter right after filing; independent of the classifier.
    template = _select_template(f"{title} {description}".lower())
    first_name = user_name.split()[0] if user_name and user_name.strip() else "Valued Customer"
    return AutoReply(
        category=template.category,
        greeting=f"Thank you for reaching out, {first_name}!",
        apology=template.apology,
        action=template.action,
        timeline=template.timeline,
        closing=_CLOSING,
        ticket_note=_TICKET_NOTE,
    )
