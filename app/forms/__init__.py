"""
app/forms package marker.
"""

from app.forms.form_state import FormPathError, FormState, split_path

__all__ = [
    "FormPathError",
    "FormState",
    "split_path",
]
