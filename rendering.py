from markdown_it import MarkdownIt
from markupsafe import Markup

# Raw HTML stays escaped: statements and comments are user supplied
md = MarkdownIt('commonmark', {'html': False, 'linkify': False, 'breaks': True}).enable('table')


def render_markdown(text):
    """Renders markdown to HTML that is safe to drop into a template."""
    if not text:
        return Markup('')
    return Markup(md.render(text))


def init_app(app):
    app.add_template_filter(render_markdown, 'markdown')
