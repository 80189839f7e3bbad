def _refine(label: str, html: str) -> str:
    if "Strict" in html:
        return f"{label} Strict"
    if "Transitional" in html:
        return f"{label} Transitional"
    return label


def detect_html_version(html: str) -> str:
    """
    Guess the markup dialect from DOCTYPE/version markers.

    Rules are checked in order and the first match wins: an HTML5 doctype,
    then any XHTML marker, then HTML 4.01, otherwise "Unknown".

    Args:
        html: Serialized document (the parser's output, not the raw bytes)

    Returns:
        Version label such as "HTML5", "XHTML 1.0 Strict" or "Unknown"
    """
    lowered = html.lower()

    if "<!doctype html>" in lowered:
        return "HTML5"

    if "xhtml" in lowered:
        if "1.1" in html:
            return "XHTML 1.1"
        if "1.0" in html:
            return _refine("XHTML 1.0", html)
        return "XHTML"

    if "HTML 4.01" in html:
        return _refine("HTML 4.01", html)

    return "Unknown"
