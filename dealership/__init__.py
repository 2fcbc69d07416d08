"""
Dealership API package.

Validation and error handling for the dealership back-office API: field
validators, cross-field consistency checks, entity validators, error
sanitization and the mapping of service failures to HTTP responses, served
through Flask blueprints for vehicles, invoices, customers and expenses.

Usage:
    from dealership import create_app

    app = create_app('production')
"""

__version__ = "1.0.0"
__title__ = "Dealership API"

from dealership.app import create_app  # noqa: E402

__all__ = ['__version__', '__title__', 'create_app']
