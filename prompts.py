"""Prompt templates for palace story generation (French output)."""

STORY_PROMPT_TEMPLATE = """Tu es un guide expérimenté de palais mental. Génère une suite d'histoire immersive avec exactement 3 choix.

Histoire actuelle: {story}
Choix précédents: {choices}

RÈGLES STRICTES:
- Thème cohérent avec le palais mental
- Descriptions riches et mémorisables (200-300 mots)
- Exactement 3 choix distincts et intéressants
- Intégrer des éléments mnémotechniques
- Réponse en français uniquement

Format JSON STRICT (pas de markdown, juste le JSON):
{{
  "story": "Texte de l'histoire détaillée",
  "choices": ["Choix 1", "Choix 2", "Choix 3"],
  "memoryTip": "Conseil concret pour mémoriser cette scène"
}}"""

OPENING_PROMPT_TEMPLATE = (
    "Crée le début d'un palais mental sur le thème: \"{name}\". \n"
    "Décris l'entrée majestueuse de ce palais thématique. Le visiteur se trouve "
    "devant les grandes portes et s'apprête à pénétrer dans ce lieu magique "
    "dédié à la mémorisation. \n"
    "Décris l'architecture, l'ambiance et les premiers éléments visuels "
    "marquants qui aideront à mémoriser."
)


def build_story_prompt(story: str, choices: list[str] | None = None) -> str:
    """Fill the generation template with the current story and prior choices."""
    return STORY_PROMPT_TEMPLATE.format(story=story, choices=", ".join(choices or []))


def build_opening_prompt(palace_name: str) -> str:
    return OPENING_PROMPT_TEMPLATE.format(name=palace_name)


def build_choice_prompt(story: str, choice: str) -> str:
    return f"{story}\n\nLe visiteur choisit: {choice}"
