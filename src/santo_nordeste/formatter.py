from __future__ import annotations
from santo_nordeste.models import Recipe


def format_recipe(recipe: Recipe) -> str:
    lines: list[str] = [
        recipe.title,
        "=" * len(recipe.title),
        recipe.description,
        "",
        f"Tempo: {recipe.cooking_time} | Dificuldade: {recipe.difficulty.value}",
        "",
        "Ingredientes",
        "------------",
    ]
    lines.extend(f"• {ingredient}" for ingredient in recipe.ingredients)
    lines += ["", "Modo de Preparo", "---------------"]
    lines.extend(f"{i}. {step}" for i, step in enumerate(recipe.instructions, start=1))
    lines += ["", "Curiosidade Cultural", "--------------------", f'"{recipe.history}"']

    if recipe.drink_pairings:
        lines += ["", "Harmonização", "------------"]
        lines.extend(f"• {drink}" for drink in recipe.drink_pairings)

    return "\n".join(lines).strip()
