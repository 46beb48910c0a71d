from models import Presentation, Slide


def build_fallback_presentation(theme: str, slides_count: int) -> Presentation:
    """
    Synthesizes a placeholder deck of exactly `slides_count` slides for `theme`.
    The first slide introduces the theme and the last one is a conclusion.
    """
    slides = []

    # --- 1. Introduction ---
    slides.append(Slide(
        title=theme,
        content=[
            f"A presentation about {theme}",
            "Generated automatically",
            "Let's explore this topic",
        ],
    ))

    # --- 2. Topic placeholders ---
    for i in range(1, slides_count - 1):
        slides.append(Slide(
            title=f"Topic {i}",
            content=[
                f"Key point about {theme}",
                "Relevant details",
                "Additional information",
            ],
        ))

    # --- 3. Conclusion ---
    if slides_count > 1:
        slides.append(Slide(
            title="Conclusion",
            content=[
                "Summary of the main points",
                "Final thoughts",
                "Thank you for your attention!",
            ],
        ))

    return Presentation(title=theme, theme=theme, slides=slides)


def build_fallback_slide(title: str) -> Slide:
    """Three generic bullets referencing the slide title."""
    return Slide(
        title=title,
        content=[
            f"Content about {title}",
            "Relevant information",
            "Important details",
        ],
    )
