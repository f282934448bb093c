"""
Mvmender VERIFIER
-----------------
The final judge of every candidate. A candidate is only accepted when the
standard library parser reads it in strict mode AND the top-level value is
an array or an object (RPG Maker data files are never bare scalars).

Author: Mvmender Team
Date: 2026-10-19
"""

import json
from dataclasses import dataclass
from typing import Optional, Any


@dataclass(frozen=True)
class Verdict:
    ok: bool
    error: Optional[str] = None
    offset: Optional[int] = None
    value: Any = None


def _reject_constant(name: str):
    # NaN / Infinity are JavaScript-isms, not JSON
    raise ValueError(f"Non-standard constant '{name}'")


def parse(text: str) -> Any:
    """Strict parse. Raises ValueError (json.JSONDecodeError) on failure."""
    return json.loads(text, parse_constant=_reject_constant)


def verify(text: str) -> Verdict:
    try:
        value = parse(text)
    except json.JSONDecodeError as e:
        return Verdict(ok=False, error=f"{e.msg} (line {e.lineno}, column {e.colno})", offset=e.pos)
    except ValueError as e:
        return Verdict(ok=False, error=str(e))
    except RecursionError:
        return Verdict(ok=False, error="Nesting too deep to parse")

    if not isinstance(value, (list, dict)):
        return Verdict(
            ok=False,
            error=f"Top-level value is a {type(value).__name__}, expected an array or object",
            offset=0,
        )
    return Verdict(ok=True, value=value)
