"""Share code grammar: generation, validation and prefix stripping."""

import re
import secrets
from functools import lru_cache

from common.constants import (
    SHARE_CODE_ALPHABET,
    SHARE_CODE_GROUP_LENGTH,
    SHARE_CODE_GROUPS,
    SHARE_CODE_NAMESPACE,
    SHARE_CODE_SCHEME,
)
from common.exceptions import InvalidFormatError


def share_code_prefix(scheme: str = SHARE_CODE_SCHEME, namespace: str = SHARE_CODE_NAMESPACE) -> str:
    return f"{scheme}://{namespace}-"


@lru_cache(maxsize=16)
def share_code_pattern(scheme: str = SHARE_CODE_SCHEME, namespace: str = SHARE_CODE_NAMESPACE) -> re.Pattern:
    group = f"[a-z0-9]{{{SHARE_CODE_GROUP_LENGTH}}}"
    body = "-".join([group] * SHARE_CODE_GROUPS)
    return re.compile(re.escape(share_code_prefix(scheme, namespace)) + f"({body})")


def generate_share_code(scheme: str = SHARE_CODE_SCHEME, namespace: str = SHARE_CODE_NAMESPACE) -> str:
    """
    Draw a random share code, e.g. privshare://0g-ab12-cd34-ef56-gh78.

    Codes are uniform over the alphabet and unrelated to file content.
    """
    groups = [
        "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_GROUP_LENGTH))
        for _ in range(SHARE_CODE_GROUPS)
    ]
    return share_code_prefix(scheme, namespace) + "-".join(groups)


def validate_share_code(code, scheme: str = SHARE_CODE_SCHEME, namespace: str = SHARE_CODE_NAMESPACE) -> bool:
    """Pure grammar check. No I/O."""
    if not isinstance(code, str):
        return False
    return share_code_pattern(scheme, namespace).fullmatch(code) is not None


def extract_code(code: str, scheme: str = SHARE_CODE_SCHEME, namespace: str = SHARE_CODE_NAMESPACE) -> str:
    """
    Strip the scheme and namespace, e.g. 'ab12-cd34-ef56-gh78'.

    Raises:
        InvalidFormatError: If the code does not follow the grammar
    """
    match = share_code_pattern(scheme, namespace).fullmatch(code) if isinstance(code, str) else None
    if match is None:
        raise InvalidFormatError(f"Invalid share code format: {code!r}", stage="validate", share_code=str(code))
    return match.group(1)
