"""
Built-in evaluation rules

Each rule maps the tuple of labels drawn in one trial to a compound result
label. Rules are plain functions; the factories below return closures.
"""

from typing import Any, Callable, Dict, Hashable, Tuple

from ..exceptions import ConfigurationError, EvaluationError
from .models import EvaluationRule


def identity(drawn: Tuple[Hashable, ...]) -> Hashable:
    """Single draw -> its label, several draws -> the tuple itself"""
    if len(drawn) == 1:
        return drawn[0]
    return drawn


def genotype(drawn: Tuple[Hashable, ...]) -> str:
    """
    Unordered allele combination, dominant (uppercase) alleles first

    ("a", "A") and ("A", "a") both give "Aa", so a Punnett-square cross
    yields the classic 1:2:1 AA/Aa/aa split.
    """
    alleles = [str(label) for label in drawn]
    return "".join(sorted(alleles, key=lambda a: (a.lower(), a.islower())))


def all_equal(drawn: Tuple[Hashable, ...]) -> str:
    return "same" if len(set(drawn)) == 1 else "different"


def total(drawn: Tuple[Hashable, ...]) -> Any:
    """Numeric sum of the drawn labels"""
    try:
        return sum(drawn)
    except TypeError as e:
        raise EvaluationError(f"Cannot sum non-numeric draws {drawn!r}", draws=drawn) from e


def joined(sep: str = "") -> EvaluationRule:
    """Ordered concatenation of the drawn labels"""
    def rule(drawn: Tuple[Hashable, ...]) -> str:
        return sep.join(str(label) for label in drawn)
    rule.__name__ = "joined"
    return rule


def count_of(target: Hashable) -> EvaluationRule:
    """Number of draws equal to target"""
    def rule(drawn: Tuple[Hashable, ...]) -> int:
        return sum(1 for label in drawn if label == target)
    rule.__name__ = f"count_of({target!r})"
    return rule


def predicate(fn: Callable[[Tuple[Hashable, ...]], bool]) -> EvaluationRule:
    """Wrap a boolean test so trials are labelled True or False"""
    def rule(drawn: Tuple[Hashable, ...]) -> bool:
        return bool(fn(drawn))
    rule.__name__ = getattr(fn, "__name__", "predicate")
    return rule


def labelled(mapping: Dict[Tuple[Hashable, ...], Hashable], unordered: bool = False) -> EvaluationRule:
    """
    Look the draw tuple up in an explicit table

    Combinations missing from the table are unclassifiable and produce an
    EvaluationError for that trial.
    """
    table = {}
    for key, value in mapping.items():
        key = tuple(key)
        table[tuple(sorted(key, key=repr)) if unordered else key] = value

    def rule(drawn: Tuple[Hashable, ...]) -> Hashable:
        key = tuple(sorted(drawn, key=repr)) if unordered else drawn
        if key not in table:
            raise EvaluationError(f"No label defined for draws {drawn!r}", draws=drawn)
        return table[key]
    rule.__name__ = "labelled"
    return rule


_SIMPLE_RULES: Dict[str, EvaluationRule] = {
    "identity": identity,
    "genotype": genotype,
    "all_equal": all_equal,
    "total": total,
}

_RULE_FACTORIES: Dict[str, Callable[..., EvaluationRule]] = {
    "joined": joined,
    "count_of": count_of,
    "labelled": labelled,
}


def rule_from_name(name: str, **params: Any) -> EvaluationRule:
    """
    Resolve a built-in rule by name (used by YAML experiment files)

    Args:
        name: One of identity, genotype, all_equal, total, joined,
              count_of, labelled
        **params: Arguments for the factory rules

    Raises:
        ConfigurationError: If the name is unknown or params do not fit
    """
    if name in _SIMPLE_RULES:
        if params:
            raise ConfigurationError(
                f"Rule '{name}' takes no parameters, got {sorted(params)}",
                rule=name
            )
        return _SIMPLE_RULES[name]

    if name in _RULE_FACTORIES:
        try:
            return _RULE_FACTORIES[name](**params)
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid parameters for rule '{name}': {e}",
                rule=name,
                params=params
            ) from e

    raise ConfigurationError(
        f"Unknown evaluation rule '{name}'",
        rule=name,
        available=sorted(list(_SIMPLE_RULES) + list(_RULE_FACTORIES))
    )
