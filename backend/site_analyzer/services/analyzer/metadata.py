from site_analyzer.services.parser.document import HTMLDocument


def extract_meta_title(doc: HTMLDocument) -> str:
    """
    Extract the page title.

    Args:
        doc: Parsed document

    Returns:
        Trimmed text of the first <title> element, or empty string
    """
    title_tag = doc.find_first("title")
    if title_tag is None:
        return ""
    return title_tag.get_text().strip()


def extract_meta_description(doc: HTMLDocument) -> str:
    """
    Extract the page description.

    The OpenGraph description is only consulted when the first
    ``<meta name="description">`` is missing or has no content attribute;
    the first matching tag always wins.

    Args:
        doc: Parsed document

    Returns:
        Trimmed description, or empty string
    """
    for predicates in ({"name": "description"}, {"property": "og:description"}):
        meta = doc.find_first("meta", **predicates)
        if meta is not None and meta.has_attr("content"):
            return meta["content"].strip()
    return ""
