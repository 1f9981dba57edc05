"""Export pipeline stages: selection, front matter, body, emission."""

from orgpost.export.pipeline import ExportContext, export_outline, load_outline, run_export

__all__ = ["ExportContext", "export_outline", "load_outline", "run_export"]
