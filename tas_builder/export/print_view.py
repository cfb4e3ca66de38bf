from markdown_it import MarkdownIt
from markupsafe import Markup

from tas_builder.agents.schemas import ValidatedPlan
from tas_builder.export.markdown import plan_to_markdown

# js-default: raw HTML in model output is escaped, tables enabled
_md = MarkdownIt("js-default")


def render_print_html(plan: ValidatedPlan) -> Markup:
    """HTML body for the print-ready view; the browser's print dialog makes the PDF."""
    return Markup(_md.render(plan_to_markdown(plan)))
