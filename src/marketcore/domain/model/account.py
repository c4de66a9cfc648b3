"""Customer accounts and their stored addresses.

Only what order intake needs to check references: an account exists, an
address exists and who owns it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    id: int
    email: str
    is_active: bool = True


@dataclass
class Address:
    id: int
    user_id: int
    line1: str
    city: str
    country: str
    line2: str = ""
    postal_code: str = ""
