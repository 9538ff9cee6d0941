"""Signed-in principal held in the session store.

Only the opaque principal id is kept; the role is always looked up again.
"""

from typing import Dict, MutableMapping, Optional


PRINCIPAL_KEY = "principal_id"


def current_principal_id(store: MutableMapping) -> Optional[str]:
    return store.get(PRINCIPAL_KEY) or None


def sign_in(store: MutableMapping, user: Dict) -> None:
    store[PRINCIPAL_KEY] = user["id"]


def sign_out(store: MutableMapping) -> None:
    # the cart belongs to the browser session, not to the account
    store.pop(PRINCIPAL_KEY, None)
