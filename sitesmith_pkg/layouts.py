"""
Jinja2 layout engine used when no other template engine is supplied.
"""

import os

from jinja2 import Environment, FileSystemLoader

DEFAULT_EXTENSION = 'html'


def layout_filename(name, extension=DEFAULT_EXTENSION):
    """Append the template extension to a bare layout name."""
    if not name:
        return name
    if os.path.splitext(name)[1]:
        return name
    return f"{name}.{extension}"


class LayoutEngine:
    def __init__(self, directory, extension=DEFAULT_EXTENSION):
        self.directory = directory
        self.extension = extension
        self.env = Environment(loader=FileSystemLoader(directory))

    def template_context(self, document, global_metadata):
        context = dict(global_metadata)
        context.update(document.frontmatter)
        context.update(
            contents=document.body,
            content=document.body,
            page=document.frontmatter,
            document=document,
            path=document.path,
            pagination=document.pagination,
        )
        return context

    def render(self, document, layout_name, global_metadata):
        """Render a document into the named layout."""
        template = self.env.get_template(layout_filename(layout_name, self.extension))
        return template.render(**self.template_context(document, global_metadata))

    def render_string(self, source, document, global_metadata):
        """Render a document body as a template of its own."""
        template = self.env.from_string(source)
        return template.render(**self.template_context(document, global_metadata))
