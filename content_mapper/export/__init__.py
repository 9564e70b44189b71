"""Export of analysis results as Markdown, JSON, HTML or CSV documents.

Use explicit imports:
    from content_mapper.export.formatters import export_analysis, render_export
"""

__all__ = [
    "ExportDocument",
    "export_analysis",
    "export_to_csv",
    "export_to_html",
    "export_to_json",
    "export_to_markdown",
    "render_export",
]
