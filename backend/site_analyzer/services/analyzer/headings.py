from typing import Dict, List

from site_analyzer.services.parser.document import HTMLDocument

HEADING_LEVELS = range(1, 7)


def extract_headings(doc: HTMLDocument) -> Dict[int, List[str]]:
    """
    Collect trimmed heading texts for levels 1-6 in document order.

    Headings that are empty after trimming are left out, so a level's count
    is always the length of its list.
    """
    headings: Dict[int, List[str]] = {}
    for level in HEADING_LEVELS:
        texts = (tag.get_text().strip() for tag in doc.find_all(f"h{level}"))
        headings[level] = [text for text in texts if text]
    return headings
