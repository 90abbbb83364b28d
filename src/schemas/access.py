"""Dashboard access decision schema."""

from typing import Optional

from schemas.base import CamelModel


class AccessDecision(CamelModel):
    """Whether a user may open their dashboard, and where to go if not."""

    can_access: bool
    redirect_to: Optional[str] = None
    reason: str
