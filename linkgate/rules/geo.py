"""Country block-list matching."""

from typing import Dict, FrozenSet, Iterable, Optional

UNKNOWN_COUNTRY = "Inconnu"

# Values geolocation produces when it could not resolve anything.
UNKNOWN_COUNTRIES = {"inconnu", "unknown", "n/a", "-"}

# Tokens this short are ISO codes; they only ever match exactly ("us" is not "russia").
CODE_LENGTH = 3

# Common name -> alternative names and ISO 3166 codes. Providers disagree on
# naming (ipapi.co returns names, api.country.is returns alpha-2 codes).
COUNTRY_ALIASES: Dict[str, tuple] = {
    "madagascar": ("malagasy", "mg", "mdg"),
    "cuba": ("cu", "cub"),
    "iran": ("ir", "irn", "islamic republic of iran"),
    "north korea": ("kp", "prk", "democratic people's republic of korea"),
    "south korea": ("kr", "kor", "republic of korea"),
    "russia": ("ru", "rus", "russian federation"),
    "china": ("cn", "chn", "people's republic of china"),
    "syria": ("sy", "syr", "syrian arab republic"),
    "belarus": ("by", "blr"),
    "venezuela": ("ve", "ven"),
    "united states": ("us", "usa", "united states of america"),
    "united kingdom": ("gb", "gbr", "uk", "great britain"),
    "france": ("fr", "fra"),
    "germany": ("de", "deu", "deutschland"),
    "spain": ("es", "esp"),
    "italy": ("it", "ita"),
    "canada": ("ca", "can"),
    "brazil": ("br", "bra"),
    "india": ("in", "ind"),
    "nigeria": ("ng", "nga"),
    "vietnam": ("vn", "vnm", "viet nam"),
    "ukraine": ("ua", "ukr"),
    "morocco": ("ma", "mar"),
    "algeria": ("dz", "dza"),
    "tunisia": ("tn", "tun"),
    "senegal": ("sn", "sen"),
    "ivory coast": ("ci", "civ", "cote d'ivoire", "côte d'ivoire"),
    "belgium": ("be", "bel"),
    "switzerland": ("ch", "che"),
}

_ALIAS_GROUPS: Dict[str, FrozenSet[str]] = {}
for _name, _aliases in COUNTRY_ALIASES.items():
    _group = frozenset((_name,) + _aliases)
    for _term in _group:
        _ALIAS_GROUPS[_term] = _group


def is_unknown_country(country: Optional[str]) -> bool:
    return not country or not country.strip() or country.strip().lower() in UNKNOWN_COUNTRIES


def _expand(term: str) -> FrozenSet[str]:
    return _ALIAS_GROUPS.get(term, frozenset((term,)))


def _terms_match(a: str, b: str) -> bool:
    if len(a) <= CODE_LENGTH or len(b) <= CODE_LENGTH:
        return a == b
    return a in b or b in a


def country_matches_rule(country: str, rule: str) -> bool:
    """Case-insensitive match of a resolved country against one rule.

    Names match as substrings in either direction ("Iran" ~ "Islamic Republic
    of Iran"); both sides are first expanded through COUNTRY_ALIASES so a rule
    naming a country also catches its ISO codes.

    Terms of 3 characters or fewer are treated as ISO codes and only match
    exactly, never as substrings: rule "us" does not match "Russia" and rule
    "ind" does not match "Indonesia".
    """
    if not rule or not isinstance(rule, str) or not isinstance(country, str):
        return False
    normalized_country = country.strip().lower()
    normalized_rule = rule.strip().lower()
    if not normalized_rule or not normalized_country:
        return False

    return any(
        _terms_match(c, r)
        for c in _expand(normalized_country)
        for r in _expand(normalized_rule)
    )


def is_country_blocked(country: Optional[str], rules: Optional[Iterable[str]]) -> bool:
    """Whether a resolved country matches any block rule.

    An unknown country never matches: geolocation failures must not block.
    """
    if is_unknown_country(country) or not rules:
        return False
    return any(country_matches_rule(country, rule) for rule in rules)
