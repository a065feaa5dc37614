"""Text documents produced by the production handlers.

- labels.py:        product labels (``etiquetas_geradas/ETQ_*.txt``)
- waste_report.py:  food-waste reports (``relatorios/DESP_*.txt``)
- storage.py:       shared file writing
"""

from foodworker.documents.labels import generate_label
from foodworker.documents.waste_report import create_waste_report

__all__ = ["generate_label", "create_waste_report"]
