import logging
import re

from pptx import Presentation as PptxPresentation
from pptx.dml.color import RGBColor
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.util import Inches, Pt

from models import Presentation, Slide


# --- 1. Design Constants ---
# Colors
ACCENT_BLUE = RGBColor(0x3B, 0x82, 0xF6)
TEXT_COLOR = RGBColor(0x33, 0x33, 0x33)
FOOTER_COLOR = RGBColor(0x66, 0x66, 0x66)
WHITE = RGBColor(255, 255, 255)
# Slide Dimensions (16:9)
SLIDE_WIDTH = Inches(16)
SLIDE_HEIGHT = Inches(9)
# Margins
MARGIN_LEFT = Inches(1.0)
MARGIN_RIGHT = Inches(1.0)
MARGIN_TOP = Inches(0.8)
MARGIN_BOTTOM = Inches(0.8)
# Fonts
FONT_HEADLINE = 'Arial'
FONT_BODY = 'Arial'
TITLE_SLIDE_FONT_SIZE = Pt(44)
SLIDE_TITLE_FONT_SIZE = Pt(34)
BODY_FONT_SIZE = Pt(22)
FOOTER_FONT_SIZE = Pt(12)

AUTHOR = 'Slide Deck Generator'
BLANK_LAYOUT_INDEX = 6
MAX_TEXT_LENGTH = 1000
# Core properties are capped at 255 characters, ellipsis included
MAX_CORE_PROPERTY_LENGTH = 252

# --- 2. Helper Functions ---

def truncate(text, limit=MAX_TEXT_LENGTH):
    # Very long runs trip up python-pptx shape naming
    if text and len(text) > limit:
        return text[:limit] + "..."
    return text


def apply_formatted_text_to_paragraph(p, text):
    """
    Parses text with **bold** syntax and adds it as runs to a paragraph object.
    """
    if not text:
        return
    parts = re.split(r'(\*\*.*?\*\*)', truncate(text))

    for part in parts:
        if part.startswith('**') and part.endswith('**') and len(part) > 4:
            run = p.add_run()
            run.text = part[2:-2]
            run.font.bold = True
        elif part:
            run = p.add_run()
            run.text = part


def style_paragraph(p, size, color, bold=False, name=FONT_BODY):
    p.font.size = size
    p.font.name = name
    p.font.color.rgb = color
    p.font.bold = bold

# --- 3. Slide Drawing Functions ---

def draw_title(slide, data: Slide, is_title_slide):
    title_shape = slide.shapes.add_textbox(
        MARGIN_LEFT, MARGIN_TOP, SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, Inches(1.4)
    )
    title_tf = title_shape.text_frame
    title_tf.word_wrap = True
    title_tf.vertical_anchor = MSO_ANCHOR.MIDDLE
    p = title_tf.paragraphs[0]
    p.alignment = PP_ALIGN.CENTER
    # Slide 0 is always treated as the title slide
    size = TITLE_SLIDE_FONT_SIZE if is_title_slide else SLIDE_TITLE_FONT_SIZE
    style_paragraph(p, size, ACCENT_BLUE, bold=True, name=FONT_HEADLINE)
    p.text = truncate(data.title)


def draw_body(slide, data: Slide):
    body_top = MARGIN_TOP + Inches(1.8)
    body_height = SLIDE_HEIGHT - body_top - MARGIN_BOTTOM - Inches(0.5)
    body_shape = slide.shapes.add_textbox(
        MARGIN_LEFT, body_top, SLIDE_WIDTH - MARGIN_LEFT - MARGIN_RIGHT, body_height
    )
    body_tf = body_shape.text_frame
    body_tf.word_wrap = True
    body_tf.vertical_anchor = MSO_ANCHOR.TOP

    # Plain-text slides are drawn as one block without bullet markers
    prefix = "• " if data.bulleted else ""
    for i, line in enumerate(data.content):
        p = body_tf.paragraphs[0] if i == 0 else body_tf.add_paragraph()
        style_paragraph(p, BODY_FONT_SIZE, TEXT_COLOR)
        if data.bulleted:
            p.space_after = Pt(10)
        apply_formatted_text_to_paragraph(p, f"{prefix}{line}")


def draw_footer(slide, index, total):
    footer_shape = slide.shapes.add_textbox(
        SLIDE_WIDTH - MARGIN_RIGHT - Inches(2), SLIDE_HEIGHT - MARGIN_BOTTOM, Inches(2), Inches(0.4)
    )
    p = footer_shape.text_frame.paragraphs[0]
    p.alignment = PP_ALIGN.RIGHT
    style_paragraph(p, FOOTER_FONT_SIZE, FOOTER_COLOR)
    p.text = f"{index + 1} / {total}"

# --- 4. Main Execution Logic ---

def create_presentation(presentation: Presentation):
    """Creates a python-pptx presentation with one slide per document slide."""
    prs = PptxPresentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT

    prs.core_properties.author = AUTHOR
    prs.core_properties.title = truncate(presentation.title, MAX_CORE_PROPERTY_LENGTH)
    prs.core_properties.subject = truncate(presentation.theme, MAX_CORE_PROPERTY_LENGTH)

    total = len(presentation.slides)
    logging.info(f"Starting PPTX generation for '{presentation.title}' ({total} slides)...")
    for i, slide_data in enumerate(presentation.slides):
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT_INDEX])
        slide.background.fill.solid()
        slide.background.fill.fore_color.rgb = WHITE

        draw_title(slide, slide_data, is_title_slide=(i == 0))
        draw_body(slide, slide_data)
        draw_footer(slide, i, total)
        logging.debug(f"  - Drew slide {i + 1}: {slide_data.title}")

    return prs
