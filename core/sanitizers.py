# tracker/core/sanitizers.py
"""
Input sanitization for user-generated text.

Titles, descriptions, objectives, update remarks and comments pass
through these functions before being stored or rendered.
"""
import re
from typing import Optional

import bleach


# Allowed HTML tags for rich text (descriptions, objectives, remarks)
ALLOWED_TAGS = [
    'p', 'br', 'strong', 'em', 'u', 'a', 'ul', 'ol', 'li',
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'blockquote', 'code', 'pre'
]

ALLOWED_ATTRIBUTES = {
    'a': ['href', 'title'],
}


def sanitize_text(text: Optional[str], max_length: Optional[int] = None, strip: bool = True) -> str:
    """
    Sanitize plain text input.

    - Strips leading/trailing whitespace
    - Removes control characters
    - Enforces maximum length
    - Returns empty string for None input
    """
    if text is None:
        return ""

    if strip:
        text = text.strip()

    # Remove control characters except newlines and tabs
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def sanitize_html(html: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize HTML content, removing dangerous elements.
    """
    if html is None:
        return ""

    clean = bleach.clean(
        html.strip(),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        strip=True
    )

    if max_length and len(clean) > max_length:
        clean = clean[:max_length]

    return clean


def sanitize_title(title: Optional[str]) -> str:
    """
    Sanitize project titles.

    - Max 255 characters
    - No HTML
    - Single line (no newlines)
    """
    text = bleach.clean(sanitize_text(title, max_length=255), tags=[], strip=True)
    text = re.sub(r'[\r\n]+', ' ', text)
    text = re.sub(r'\s+', ' ', text)
    return text


def sanitize_description(description: Optional[str]) -> str:
    """Project descriptions and objectives: max 10000 chars, limited HTML."""
    return sanitize_html(description, max_length=10000)


def sanitize_remarks(remarks: Optional[str]) -> str:
    return sanitize_html(remarks, max_length=5000)


def sanitize_comment(content: Optional[str]) -> str:
    # Comments are plain text
    return bleach.clean(sanitize_text(content, max_length=2000), tags=[], strip=True)
