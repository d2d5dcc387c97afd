"""RGPD schemas"""

from typing import Optional

from pydantic import BaseModel


class ErasureRequest(BaseModel):
    email: Optional[str] = None
