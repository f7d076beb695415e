"""
Core module for application configuration and utilities.

Note: the CAT engine lives in ``catexam.core.cat`` and is not imported at
package level. Import it directly: from catexam.core.cat import ...
"""
from .config import settings

__all__ = ["settings"]
