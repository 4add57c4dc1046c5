from __future__ import annotations

CUSTOM_CATEGORY_ORDER: tuple[str, ...] = (
    'Pollos Asados',
    'Costillas y Patas Asadas',
    'Guarniciones',
    'Quesadillas y Burritos',
    'Platos Combinados',
    'Mojos y Salsas',
    'Bebidas',
)

_POSITIONS = {name: index for index, name in enumerate(CUSTOM_CATEGORY_ORDER)}


def normalize_sort_text(value: str | None) -> str:
    return (value or '').strip().lower()


def category_sort_key(name: str | None) -> tuple[int, str]:
    """Fixed display order first, then alphabetical for anything unlisted."""
    return (_POSITIONS.get((name or '').strip(), len(_POSITIONS)), normalize_sort_text(name))
