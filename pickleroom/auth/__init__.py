"""Session helpers shared by the API blueprints.

Login itself is handled by the accounts service; this package only reads the
session it leaves behind.
"""

from .decorators import login_required

__all__ = ["login_required"]
