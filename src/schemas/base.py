"""Base schema with camelCase wire names.

Python code uses snake_case attributes; JSON bodies use camelCase, and both
spellings are accepted on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Shape check only; ownership of the address is proven by accepting an invitation
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )
