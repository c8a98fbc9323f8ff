"""Email templates rendered with Jinja2.

Each template produces a subject, an HTML body and a plain-text body. The
plain-text part is derived from the HTML so both always say the same thing.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from jinja2 import DictLoader, Environment, TemplateError, TemplateNotFound

from heritage_whisper.core.logging_config import get_logger

logger = get_logger(__name__)

FIRST_SENTENCE_MAX_CHARS = 150

_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{% block title %}Heritage Whisper{% endblock %}</title>
</head>
<body style="margin:0;padding:0;background:#F9FAFB;font-family:Georgia,serif;color:#1F2937;">
  <div style="max-width:600px;margin:0 auto;padding:32px;background:#FFFFFF;">
    <h1 style="color:#203954;">{% block heading %}{% endblock %}</h1>
    {% block content %}{% endblock %}
    <hr style="border:none;border-top:1px solid #E5E7EB;margin:32px 0;">
    <p style="font-size:12px;color:#6B7280;">{% block footer %}{% endblock %}</p>
    <p style="font-size:12px;color:#6B7280;">&copy; {{ year }} Heritage Whisper. All rights reserved.</p>
  </div>
</body>
</html>
"""

_TEMPLATES: Dict[str, str] = {
    "layout.html": _LAYOUT,
    "family_invite.subject": "{{ storyteller_name }} has invited you to view their life stories",
    "family_invite.html": """{% extends "layout.html" %}
{% block title %}You're invited to Heritage Whisper{% endblock %}
{% block heading %}You're Invited!{% endblock %}
{% block content %}
{% if member_name %}<p>Hi {{ member_name }},</p>{% endif %}
<p><strong>{{ storyteller_name }}</strong> has invited you to view their life stories on Heritage Whisper.</p>
{% if personal_message %}<p><em>"{{ personal_message }}"</em></p>{% endif %}
<p>What you can explore:</p>
<ul>
  <li>View their timeline of memories and milestones</li>
  <li>Read their stories with photos and context</li>
  <li>Listen to audio recordings in their own voice</li>
  <li>Browse their memory book organized by decade</li>
  <li>Suggest questions you'd like them to answer</li>
</ul>
<p><a href="{{ magic_link }}">View Stories</a></p>
<p>This link will expire on <strong>{{ expires_on }}</strong>.</p>
{% endblock %}
{% block footer %}You're receiving this email because {{ storyteller_name }} invited you to view their stories on Heritage Whisper.{% endblock %}
""",
    "new_story.subject": '{{ storyteller_name }} added a new story: "{{ story_title }}"',
    "new_story.html": """{% extends "layout.html" %}
{% block title %}New Story from {{ storyteller_name }}{% endblock %}
{% block heading %}New Story Added{% endblock %}
{% block content %}
{% if member_name %}<p>Hi {{ member_name }},</p>{% endif %}
<p><strong>{{ storyteller_name }}</strong> has added a new story to their Heritage Whisper collection!</p>
<h2>{{ story_title }}{% if story_year %} ({{ story_year }}){% endif %}</h2>
{% if hero_photo_url %}<p><img src="{{ hero_photo_url }}" alt="{{ story_title }}" style="max-width:100%;"></p>{% endif %}
{% if first_sentence %}<p><em>"{{ first_sentence }}{% if not first_sentence.endswith('.') %}...{% endif %}"</em></p>{% endif %}
<p><a href="{{ view_link }}">View Story</a></p>
<p>You can view all stories in the Timeline or Memory Book.</p>
{% endblock %}
{% block footer %}You're receiving this email because you have access to {{ storyteller_name }}'s Heritage Whisper stories.
{% if unsubscribe_link %} <a href="{{ unsubscribe_link }}">Turn off story notifications</a>.{% endif %}{% endblock %}
""",
    "daily_digest.subject": (
        "{% if story_count == 1 %}{{ storyteller_name }} just shared a new story"
        "{% else %}{{ storyteller_name }} shared {{ story_count }} new stories{% endif %}"
    ),
    "daily_digest.html": """{% extends "layout.html" %}
{% block title %}New stories from {{ storyteller_name }}{% endblock %}
{% block heading %}{% if story_count == 1 %}A New Story{% else %}{{ story_count }} New Stories{% endif %}{% endblock %}
{% block content %}
{% if member_name %}<p>Hi {{ member_name }},</p>{% endif %}
<p><strong>{{ storyteller_name }}</strong> has been adding to their Heritage Whisper collection.</p>
<ul>
{% for story in stories %}  <li>{{ story.title }}{% if story.year %} ({{ story.year }}){% endif %}</li>
{% endfor %}</ul>
{% if hero_photo_url %}<p><img src="{{ hero_photo_url }}" alt="" style="max-width:100%;"></p>{% endif %}
<p><a href="{{ view_link }}">Read the Stories</a></p>
{% endblock %}
{% block footer %}You're receiving this email because you have access to {{ storyteller_name }}'s Heritage Whisper stories.
{% if unsubscribe_link %} <a href="{{ unsubscribe_link }}">Turn off story notifications</a>.{% endif %}{% endblock %}
""",
    "welcome.subject": "Welcome to Heritage Whisper!",
    "welcome.html": """{% extends "layout.html" %}
{% block title %}Welcome to Heritage Whisper{% endblock %}
{% block heading %}Welcome, {{ name }}!{% endblock %}
{% block content %}
<p>Your account is ready. Every story you record becomes part of a timeline and a memory book your family can keep forever.</p>
<p>Start with a memory that still makes you smile. A few minutes is all it takes.</p>
<p><a href="{{ app_url }}/recording">Record Your First Story</a></p>
{% endblock %}
{% block footer %}You're receiving this email because you created a Heritage Whisper account.{% endblock %}
""",
    "gift_code.subject": "Your Heritage Whisper gift code",
    "gift_code.html": """{% extends "layout.html" %}
{% block title %}Your Heritage Whisper gift{% endblock %}
{% block heading %}Thank you for your gift!{% endblock %}
{% block content %}
{% if purchaser_name %}<p>Hi {{ purchaser_name }},</p>{% endif %}
<p>Here is your gift code for one year of Heritage Whisper Premium:</p>
<p style="font-size:24px;font-family:monospace;letter-spacing:2px;"><strong>{{ code }}</strong></p>
<p>Share it with someone whose stories deserve to be kept. They can redeem it at <a href="{{ redeem_link }}">{{ redeem_link }}</a>.</p>
<p>The code is valid until <strong>{{ expires_on }}</strong>.</p>
{% endblock %}
{% block footer %}You're receiving this email because you purchased a Heritage Whisper gift.{% endblock %}
""",
}

_JINJA_ENV = Environment(loader=DictLoader(_TEMPLATES), autoescape=True, trim_blocks=True, lstrip_blocks=True)
_HTML_BREAK_PATTERN = re.compile(r"</p>|</h[12]>|</li>|<br\s*/?>", re.IGNORECASE)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_HEAD_PATTERN = re.compile(r"<head>.*?</head>", re.IGNORECASE | re.DOTALL)

TEMPLATE_NAMES = ("family_invite", "new_story", "daily_digest", "welcome", "gift_code")


class EmailRenderError(RuntimeError):
    """Raised when an email template cannot be rendered."""


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def _html_to_text(value: str) -> str:
    if not value:
        return ""
    working = _HEAD_PATTERN.sub("", value)
    working = _HTML_BREAK_PATTERN.sub("\n", working)
    working = _TAG_PATTERN.sub("", working)
    working = html.unescape(working)
    working = re.sub(r"[ \t]+", " ", working)
    working = re.sub(r"\n\s*", "\n", working)
    working = re.sub(r"\n{3,}", "\n\n", working)
    return working.strip()


def render_email(template: str, context: Optional[Dict[str, Any]] = None) -> RenderedEmail:
    """Render ``template`` (one of ``TEMPLATE_NAMES``) into subject, HTML and text."""
    values = {"year": datetime.now().year}
    values.update(context or {})
    try:
        subject = _JINJA_ENV.get_template(f"{template}.subject").render(**values)
        body = _JINJA_ENV.get_template(f"{template}.html").render(**values)
    except TemplateNotFound as exc:
        raise EmailRenderError(f"Unknown email template: {template}") from exc
    except TemplateError as exc:
        logger.error(f"Failed to render email template {template}: {exc}")
        raise EmailRenderError(f"Failed to render email template: {template}") from exc
    return RenderedEmail(subject=html.unescape(subject.strip()), html=body, text=_html_to_text(body))


def first_sentence(text: Optional[str], max_chars: int = FIRST_SENTENCE_MAX_CHARS) -> Optional[str]:
    """First sentence of a transcript, cut at a word boundary when longer than ``max_chars``."""
    if not text or not text.strip():
        return None
    cleaned = re.sub(r"\s+", " ", text).strip()
    match = re.match(r"(.+?[.!?])(?:\s|$)", cleaned)
    sentence = match.group(1) if match else cleaned
    if len(sentence) <= max_chars:
        return sentence
    cut = sentence[:max_chars].rsplit(" ", 1)[0]
    return cut.rstrip(",;:")
