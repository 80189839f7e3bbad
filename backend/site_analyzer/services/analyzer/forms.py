from dataclasses import dataclass

from bs4 import Tag

from site_analyzer.services.parser.document import HTMLDocument

LOGIN_KEYWORDS = ("login", "signin", "sign-in", "auth", "authenticate")
USER_FIELD_MARKERS = ("user", "login", "email")


@dataclass
class FormSummary:
    form_count: int = 0
    has_login_form: bool = False


def _attr_text(form: Tag, name: str) -> str:
    value = form.get(name, "")
    # bs4 splits class into a list
    if isinstance(value, list):
        value = " ".join(value)
    return value


def is_login_form(doc: HTMLDocument, form: Tag) -> bool:
    """
    Heuristic: a password field plus at least one of an email field, a
    user-ish input name, or a login keyword in action/class/id.
    """
    if doc.find_first("input", within=form, type="password") is None:
        return False

    has_email = doc.find_first("input", within=form, type="email") is not None

    # Input names are matched case-sensitively
    has_user_field = any(
        marker in field.get("name", "")
        for field in doc.find_all("input", within=form, name=True)
        for marker in USER_FIELD_MARKERS
    )

    form_attrs = " ".join(_attr_text(form, name).lower() for name in ("action", "class", "id"))
    has_keyword = any(keyword in form_attrs for keyword in LOGIN_KEYWORDS)

    return has_email or has_user_field or has_keyword


def analyze_forms(doc: HTMLDocument) -> FormSummary:
    forms = doc.find_all("form")
    return FormSummary(
        form_count=len(forms),
        has_login_form=any(is_login_form(doc, form) for form in forms),
    )
