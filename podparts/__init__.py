"""Operations console for a refurbished AirPods parts business.

The package implements stock-take reconciliation on top of a small inventory
unit registry.  See :mod:`podparts.factory` for the Flask application.
"""

__version__ = "1.0.0"
