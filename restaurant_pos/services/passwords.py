"""
Password Hashing

Accounts imported from earlier versions of the system carry SHA-256 hashes
built in several incompatible ways:

    - salt and password encoded as UTF-8, UTF-16 (LE/BE), ASCII or UTF-32
    - salt used as text, or decoded from hex into raw bytes
    - salt before or after the password
    - the salt-less digest of the password
    - a digest of the hex digest (double hashing)

New and reset passwords always use the canonical layout
``sha256(utf8(salt + password))``. Verification tries every legacy layout
so old accounts keep working.
"""

import hashlib
import hmac
import re
from typing import Iterator, Optional

# (label, codec, encode errors). Byte-order marks are never written.
LEGACY_ENCODINGS: tuple[tuple[str, str, str], ...] = (
    ("UTF8", "utf-8", "strict"),
    ("Unicode(UTF-16LE)", "utf-16-le", "strict"),
    ("BigEndianUnicode(UTF-16BE)", "utf-16-be", "strict"),
    ("ASCII", "ascii", "replace"),
    ("UTF32", "utf-32-le", "strict"),
)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def sha256_hex(data: bytes) -> str:
    """Lowercase hex SHA-256 digest."""
    return hashlib.sha256(data).hexdigest()


def hex_to_bytes(text: Optional[str]) -> Optional[bytes]:
    """
    Decode a hex string.

    Returns None for empty input, odd length or any non-hex character.
    """
    if not text or len(text) % 2 != 0 or not _HEX_RE.match(text):
        return None
    return bytes.fromhex(text)


def _replace_lone_surrogates(text: str) -> str:
    # Unpaired surrogates become U+FFFD before encoding
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def _encode(text: Optional[str], codec: str, errors: str = "strict") -> bytes:
    return _replace_lone_surrogates(text or "").encode(codec, errors)


def compute_hash_canonical(salt: Optional[str], password: Optional[str]) -> str:
    """Hash layout used for every password written by this system."""
    return sha256_hex(_encode((salt or "") + (password or ""), "utf-8"))


def compute_hash(
    salt: Optional[str],
    password: Optional[str],
    codec: str = "utf-8",
    salt_is_hex_bytes: bool = False,
    salt_first: bool = True,
    errors: str = "strict",
) -> str:
    """
    Hash ``salt`` and ``password`` with one of the legacy layouts.

    Args:
        salt: Stored salt text
        password: Candidate password
        codec: Text encoding for the password (and the salt when used as text)
        salt_is_hex_bytes: Decode the salt from hex; falls back to text when
            the salt is not valid hex
        salt_first: Put the salt before the password
        errors: Encoder error handler

    Returns:
        Lowercase hex digest
    """
    salt_bytes = hex_to_bytes(salt) if salt_is_hex_bytes else None
    if salt_bytes is None:
        salt_bytes = _encode(salt, codec, errors)

    pass_bytes = _encode(password, codec, errors)

    if salt_first:
        return sha256_hex(salt_bytes + pass_bytes)
    return sha256_hex(pass_bytes + salt_bytes)


def salt_variants(salt: Optional[str]) -> list[str]:
    """Raw, stripped, upper and lower forms of the salt, duplicates removed."""
    raw = salt or ""
    variants = [raw, raw.strip(), raw.upper(), raw.lower()]
    return list(dict.fromkeys(variants))


def candidate_hashes(salt: Optional[str], password: Optional[str]) -> Iterator[str]:
    """Yield every digest a stored hash may legitimately equal."""
    for _, codec, errors in LEGACY_ENCODINGS:
        for variant in salt_variants(salt):
            hex_salt_first = compute_hash(variant, password, codec, True, True, errors)
            hex_pass_first = compute_hash(variant, password, codec, True, False, errors)
            text_salt_first = compute_hash(variant, password, codec, False, True, errors)
            text_pass_first = compute_hash(variant, password, codec, False, False, errors)

            yield hex_salt_first
            yield hex_pass_first
            yield text_salt_first
            yield text_pass_first
            yield sha256_hex(_encode(password, codec, errors))
            yield sha256_hex(text_salt_first.encode("utf-8"))
            yield sha256_hex(text_pass_first.encode("utf-8"))


def verify_password(stored_hash: Optional[str], salt: Optional[str], password: Optional[str]) -> bool:
    """
    Check a password against a stored hash of any known layout.

    Hex digests are compared case-insensitively.
    """
    if not stored_hash:
        return False

    expected = stored_hash.lower().encode("utf-8")
    for candidate in candidate_hashes(salt, password):
        if hmac.compare_digest(candidate.encode("utf-8"), expected):
            return True
    return False


def diagnose(salt: Optional[str], stored_hash: Optional[str], password: Optional[str]) -> str:
    """
    Build a report of every computed layout next to the stored hash.

    Meant for support staff tracking down why an imported account cannot
    log in. The report contains hashes of the supplied password, so it must
    never be shown to the account holder.
    """
    lines = [
        f"Stored: {stored_hash}",
        f"Salt (raw): '{salt}'",
    ]

    for label, codec, errors in LEGACY_ENCODINGS:
        lines.append(f"--- Encoding: {label} ---")
        for variant in salt_variants(salt):
            layouts = (
                ("hexBytes+saltFirst", True, True),
                ("hexBytes+passFirst", True, False),
                ("text+saltFirst", False, True),
                ("text+passFirst", False, False),
            )
            for name, as_hex, salt_first in layouts:
                digest = compute_hash(variant, password, codec, as_hex, salt_first, errors)
                lines.append(f"salt='{variant}' {name}: {digest}")

    lines.append(f"Computed SHA256(password) with UTF8: {sha256_hex(_encode(password, 'utf-8'))}")
    lines.append(f"Computed SHA256(password) with Unicode: {sha256_hex(_encode(password, 'utf-16-le'))}")
    lines.append(f"SaltLooksLikeHex: {hex_to_bytes(salt) is not None}")

    return "\n".join(lines)
