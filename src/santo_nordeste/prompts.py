from __future__ import annotations
from santo_nordeste.models import Mode, Recipe

NARRATION_PREAMBLE = "Narração da receita: "

_RECIPE_TEMPLATES = {
    Mode.TRADITIONAL: (
        "Gere uma receita detalhada de comida nordestina baseada em: {query}. "
        "A resposta deve estar em português do Brasil."
    ),
    Mode.PANTRY: (
        "Crie uma receita criativa e autêntica da culinária nordestina brasileira "
        "usando EXCLUSIVAMENTE ou como base principal estes ingredientes que tenho "
        "em casa: {query}. Você pode assumir que o usuário tem itens básicos como "
        "sal, óleo e água. A resposta deve estar em português do Brasil."
    ),
}

_IMAGE_TEMPLATE = (
    "Uma foto profissional e apetitosa de um prato de {title}, culinária nordestina "
    "brasileira, iluminação natural, close-up, apresentação em cerâmica rústica."
)

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

RECIPE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": _STRING,
        "description": _STRING,
        "ingredients": _STRING_LIST,
        "instructions": _STRING_LIST,
        "history": _STRING,
        "cookingTime": _STRING,
        "difficulty": {"type": "STRING", "enum": ["Fácil", "Médio", "Difícil"]},
        "drinkPairings": {
            **_STRING_LIST,
            "description": "Sugestões variadas de bebidas para acompanhar o prato.",
        },
    },
    "required": [
        "title",
        "description",
        "ingredients",
        "instructions",
        "history",
        "cookingTime",
        "difficulty",
        "drinkPairings",
    ],
}


def recipe_prompt(query: str, mode: Mode) -> str:
    return _RECIPE_TEMPLATES[Mode(mode)].format(query=query.strip())


def image_prompt(title: str) -> str:
    return _IMAGE_TEMPLATE.format(title=title)


def narration_text(recipe: Recipe) -> str:
    """Text read aloud for a recipe: title, ingredients, then the steps."""
    return (
        f"Receita de {recipe.title}. "
        f"Ingredientes: {', '.join(recipe.ingredients)}. "
        f"Modo de preparo: {'. '.join(recipe.instructions)}"
    )


def narration_prompt(text: str) -> str:
    return f"{NARRATION_PREAMBLE}{text}"
