import re
import html
from typing import Optional

_SCRIPT_RE = re.compile(r'<(script|style)\b.*?>.*?</\1\s*>', flags=re.DOTALL | re.IGNORECASE)
_TAG_RE = re.compile(r'<[^>]*>')

def sanitize_text(text: Optional[str]) -> Optional[str]:
    """Strip every HTML tag but keep the text content. Empty input becomes None."""
    if text is None:
        return None
    # Drop script/style blocks entirely, then remaining tags
    cleaned = _SCRIPT_RE.sub('', text)
    cleaned = _TAG_RE.sub('', cleaned)
    # Entities were meant as text, not markup
    cleaned = html.unescape(cleaned).strip()
    return cleaned or None
