"""Product code canonicalization.

Crawlers for different ASPs spell the same product code differently:
``MIDE-001``, ``mide001``, ``mide00001``, ``FANZA-mide00001``. Instead of storing
a mapping for every historical spelling, codes are expanded into a bounded set
of plausible variations by an ordered list of code families. Each family is a
pattern plus a generator; every family whose pattern matches contributes to the
same variation set.

Supported conventions:
- DVD style: MIDE-001, ABP_123
- Brand internal 5-digit codes: mide00001, FANZA-mide00001
- Maker-number prefixed: 259LUXU-1234, 259luxu1234
- PPV codes: 4037-PPV2543
- Underscore pairs: 123456_01
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Iterable, Optional

# ASP names crawlers put in front of a code ("FANZA-mide00001")
KNOWN_ASP_PREFIXES = (
    "FANZA",
    "MGS",
    "DUGA",
    "SOKMIL",
    "B10F",
    "FC2",
    "JAPANSKA",
    "CARIBBEAN",
    "CARIBBEANCOMPR",
    "1PONDO",
    "HEYZO",
    "10MUSUME",
    "PACOPACOMAMA",
    "H4610",
    "H0930",
    "C0930",
    "GACHINCO",
    "KIN8TENGOKU",
    "NYOSHIN",
    "HEYDOUGA",
    "X1X",
    "ENKOU55",
    "UREKKO",
    "XXXURABI",
    "TOKYOHOT",
    "TVDEAV",
)

DEFAULT_BRAND_TAG = "FANZA"

_SEARCH_STRIP = re.compile(r"[-_\s]")
_SEPARATORS = re.compile(r"[-_]")
_LETTER_DIGIT_RUN = re.compile(r"([a-zA-Z]+)([0-9]+)")
_LIKE_BOUNDARY = re.compile(r"([a-z]+)[-_]?([0-9]+)")


Generator = Callable[[re.Match], Iterable[str]]


@dataclass(frozen=True)
class CodeFamily:
    """One spelling convention: a full-match pattern and its generator."""

    name: str
    pattern: re.Pattern
    generate: Generator

    def apply(self, code: str) -> set[str]:
        match = self.pattern.fullmatch(code)
        if match is None:
            return set()
        return set(self.generate(match))


def _cases(value: str) -> tuple[str, str, str]:
    return value, value.lower(), value.upper()


def _padded_forms(prefix: str, number: int) -> set[str]:
    """Hyphenated and concatenated forms without padding, 3-digit and 5-digit padded."""
    digits = str(number)
    forms = set()
    for num in {digits, digits.zfill(3), digits.zfill(5)}:
        for pre in _cases(prefix):
            forms.add(f"{pre}-{num}")
            forms.add(f"{pre}{num}")
    return forms


def _identity(match: re.Match) -> Iterable[str]:
    return _cases(match.group(0))


def _without_separators(match: re.Match) -> Iterable[str]:
    return _cases(_SEPARATORS.sub("", match.group(0)))


def _letter_digit_boundary(match: re.Match) -> Iterable[str]:
    code = match.group(0)
    hyphenated = _LETTER_DIGIT_RUN.sub(r"\1-\2", code)
    if hyphenated == code:
        return ()
    return _cases(hyphenated)


def _standard(match: re.Match) -> Iterable[str]:
    return _padded_forms(match.group(1), int(match.group(2)))


def _brand_internal(brand_tag: str) -> Generator:
    def generate(match: re.Match) -> Iterable[str]:
        prefix, number = match.group(1), int(match.group(2))
        internal = f"{prefix.lower()}{str(number).zfill(5)}"
        forms = _padded_forms(prefix, number)
        forms.add(f"{brand_tag.upper()}-{internal}")
        forms.add(f"{brand_tag.lower()}-{internal}")
        return forms

    return generate


def _maker_prefixed(match: re.Match) -> Iterable[str]:
    maker, letters, number = match.groups()
    return (
        f"{maker}{letters}-{number}",
        f"{maker}{letters.lower()}-{number}",
        f"{maker}{letters}{number}",
        f"{maker}{letters.lower()}{number}",
    )


def _ppv(match: re.Match) -> Iterable[str]:
    head, ppv, tail = match.groups()
    return (
        f"{head}-{ppv.upper()}{tail}",
        f"{head}-{ppv.lower()}{tail}",
        f"{head}{ppv.upper()}{tail}",
        f"{head}{ppv.lower()}{tail}",
    )


def _underscore_pair(match: re.Match) -> Iterable[str]:
    main, sub = match.groups()
    return (f"{main}_{sub}", f"{main}-{sub}", f"{main}{sub}")


@lru_cache(maxsize=8)
def build_code_families(brand_tag: str = DEFAULT_BRAND_TAG) -> tuple[CodeFamily, ...]:
    """Build the ordered family list. New conventions are appended here."""
    return (
        CodeFamily("identity", re.compile(r".*", re.S), _identity),
        CodeFamily("separator", re.compile(r".*", re.S), _without_separators),
        CodeFamily(
            "letter_digit_boundary",
            re.compile(r".*[a-zA-Z][0-9].*", re.S),
            _letter_digit_boundary,
        ),
        CodeFamily("standard", re.compile(r"([a-zA-Z]+)[-_]?([0-9]+)"), _standard),
        # Brand internal codes are letters + 5 digits. Anything that pads to
        # that shape (MIDE-001 -> mide00001) belongs to the same title.
        CodeFamily(
            "brand_internal",
            re.compile(r"([a-zA-Z]+)[-_]?([0-9]{1,5})"),
            _brand_internal(brand_tag),
        ),
        CodeFamily("maker_prefixed", re.compile(r"([0-9]+)([a-zA-Z]+)[-_]?([0-9]+)"), _maker_prefixed),
        CodeFamily("ppv", re.compile(r"([0-9]+)[-_]?(PPV)([0-9]+)", re.I), _ppv),
        CodeFamily("underscore_pair", re.compile(r"([0-9]+)_([0-9]+)"), _underscore_pair),
    )


def normalize_for_search(code: str) -> str:
    """Lowercase and drop hyphens, underscores and whitespace.

    >>> normalize_for_search("MIDE-001")
    'mide001'
    >>> normalize_for_search("FANZA-mide00001")
    'fanzamide00001'
    """
    return _SEARCH_STRIP.sub("", code.lower())


def strip_known_prefix(code: str) -> str:
    """Remove a leading ``<ASP>-`` prefix (case-insensitive), if any."""
    upper = code.upper()
    for prefix in KNOWN_ASP_PREFIXES:
        if upper.startswith(prefix + "-"):
            return code[len(prefix) + 1:]
    return code


def generate_variations(
    code: str,
    families: Optional[tuple[CodeFamily, ...]] = None,
) -> set[str]:
    """
    Generate the plausible alternate spellings of a product code.

    Families run against the code as given, its trimmed form, and its
    prefix-stripped form. The identity family always matches, so the result
    contains at least the three case forms of the input.

    Args:
        code: Raw product code from a crawler or a search box
        families: Family list to apply (defaults to build_code_families())

    Returns:
        Set of variations
    """
    if families is None:
        families = build_code_families()

    trimmed = code.strip()
    bases = [code]
    for candidate in (trimmed, strip_known_prefix(trimmed)):
        if candidate not in bases:
            bases.append(candidate)

    variations: set[str] = set()
    for base in bases:
        for family in families:
            variations |= family.apply(base)
    return variations


def codes_match(a: str, b: str) -> bool:
    """Two codes match when their search-normalized forms are equal."""
    return normalize_for_search(a) == normalize_for_search(b)


def to_like_pattern(code: str) -> str:
    """SQL LIKE pattern tolerating a separator between letters and digits.

    >>> to_like_pattern("MIDE-001")
    'mide%001'
    """
    return _LIKE_BOUNDARY.sub(r"\1%\2", code.strip().lower(), count=1)


def format_code_for_display(code: Optional[str]) -> Optional[str]:
    """
    Render a code as ``PREFIX-NUMBER`` without leading zeros.

    Examples:
        107START-470   -> START-470
        ssis00865      -> SSIS-865
        h_1234abc00123 -> ABC-123
        300mium01359   -> 300MIUM-1359

    Returns None for empty input; unparseable codes come back uppercased.
    """
    if not code or not isinstance(code, str):
        return None

    value = code.strip().upper()
    if not value:
        return None

    # Brand-specific H_<digits> distributor prefix
    value = re.sub(r"^H_[0-9]+", "", value)

    # 300-series amateur labels keep their numeric prefix
    if not re.match(r"^300[A-Z]+", value):
        value = re.sub(r"^[0-9]+(?=[A-Z])", "", value)

    for pattern in (
        r"^([0-9]*[A-Z]+)-([0-9]+)$",
        r"^([0-9]+[A-Z]+)([0-9]+)$",
        r"^([A-Z]+)([0-9]+)$",
    ):
        match = re.match(pattern, value)
        if match:
            number = match.group(2).lstrip("0") or "0"
            return f"{match.group(1)}-{number}"

    return value
