"""Document-facing line titles, templated by the catalog category type."""

FALLBACK_TITLE = "Позиция"

TITLE_PREFIXES = {
    "qualification_upgrade": "Оказание образовательной услуги по программе повышения квалификации",
    "professional_retraining": "Оказание образовательной услуги по программе профессиональной переподготовки",
    "professional_education": "Оказание образовательной услуги по программе профессионального обучения",
}


def build_display_title(category_type: str | None, title: str | None) -> str:
    """Wrap a program (or sub-program) title in its category template.

    Unknown categories keep the bare title.
    """
    prefix = TITLE_PREFIXES.get(category_type or "")
    title = (title or "").strip()
    if not prefix:
        return title or FALLBACK_TITLE
    return f"{prefix} «{title}»"
