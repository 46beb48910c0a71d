import logging
from html import escape
from pathlib import Path

from playwright.async_api import async_playwright

from models import Presentation, Slide

PDF_OPTIONS = {
    "format": "A4",
    "landscape": True,
    "print_background": True,
    "margin": {"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"},
}
BROWSER_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

STYLESHEET = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: 'Arial', sans-serif; line-height: 1.6; color: #333; }
.slide {
    width: 100%; height: 100vh; padding: 60px;
    page-break-after: always; position: relative;
    display: flex; flex-direction: column; justify-content: center;
}
.slide:last-child { page-break-after: avoid; }
.title-slide {
    background: linear-gradient(135deg, #3B82F6, #1E40AF);
    color: white; text-align: center;
}
.title-slide h1 { font-size: 3em; margin-bottom: 0.5em; color: white; }
h1, h2 { color: #3B82F6; margin-bottom: 1em; text-align: center; }
h2 { font-size: 2.5em; }
.content { font-size: 1.4em; line-height: 1.8; }
ul { list-style: none; padding: 0; }
li { margin: 1em 0; padding-left: 2em; position: relative; }
li:before { content: "▶"; color: #3B82F6; position: absolute; left: 0; font-size: 1.2em; }
.slide-number {
    position: absolute; top: 30px; right: 30px;
    background: rgba(59, 130, 246, 0.1); padding: 10px 15px;
    border-radius: 5px; font-size: 0.9em; color: #3B82F6;
}
.title-slide .slide-number { background: rgba(255, 255, 255, 0.2); color: white; }
"""


def render_slide_html(slide: Slide, index: int, total: int) -> str:
    is_title_slide = index == 0
    heading = "h1" if is_title_slide else "h2"
    if slide.bulleted:
        items = "".join(f"<li>{escape(line)}</li>" for line in slide.content)
        body = f"<ul>{items}</ul>"
    else:
        body = f"<p>{escape(chr(10).join(slide.content))}</p>"

    return (
        f'<div class="slide{" title-slide" if is_title_slide else ""}">'
        f'<div class="slide-number">{index + 1} / {total}</div>'
        f"<{heading}>{escape(slide.title)}</{heading}>"
        f'<div class="content">{body}</div>'
        "</div>"
    )


def render_html(presentation: Presentation) -> str:
    """Builds the print HTML: one page per slide, slide 0 styled as the title slide."""
    total = len(presentation.slides)
    slides_html = "\n".join(
        render_slide_html(slide, i, total) for i, slide in enumerate(presentation.slides)
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(presentation.title)}</title>
<style>{STYLESHEET}</style>
</head>
<body>
{slides_html}
</body>
</html>"""


async def write_pdf(html_content: str, filepath: Path) -> None:
    """Prints HTML to a PDF file with headless Chromium."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=True, args=BROWSER_ARGS)
        try:
            page = await browser.new_page()
            await page.set_content(html_content, wait_until="networkidle")
            await page.pdf(path=str(filepath), **PDF_OPTIONS)
        finally:
            await browser.close()
    logging.debug(f"PDF written to {filepath}")
