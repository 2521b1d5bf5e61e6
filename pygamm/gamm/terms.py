"""
Structured model formulas.

A GAMM is described by a ModelSpec built from term objects instead of a
formula string, so the fitted model can report every term with its
semantic role:

    ModelSpec(
        response='y',
        parametric=(Parametric('group'),),
        smooths=(Smooth('time'), Smooth('time', by='group')),
        random=(RandomSmooth('time', 'subject'),),
    )

is the equivalent of mgcv's

    y ~ group + s(time) + s(time, by = group) + s(time, subject, bs = "fs", m = 1)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class Parametric:
    """Unpenalized term. Categorical variables are treatment-coded."""
    variable: str

    @property
    def label(self) -> str:
        return self.variable


@dataclass(frozen=True)
class Smooth:
    """Penalized cubic regression spline s(variable).

    With ``by`` set to a factor, one difference smooth per non-reference
    level of the factor is built (the curve of that level minus the curve
    of the reference level).

    Attributes:
        variable: Covariate the smooth is a function of.
        by: Optional factor column.
        k: Basis dimension (before the sum-to-zero constraint).
    """
    variable: str
    by: str | None = None
    k: int = 10

    def __post_init__(self):
        if self.k < 4:
            raise ValueError(f"Smooth basis dimension k must be >= 4, got {self.k}")

    @property
    def label(self) -> str:
        if self.by is None:
            return f"s({self.variable})"
        return f"s({self.variable}, by = {self.by})"


@dataclass(frozen=True)
class RandomEffect:
    """lme4-style random effects with unstructured covariance.

    ``RandomEffect('subject')`` is a random intercept (1 | subject);
    ``RandomEffect('subject', ('1', 'time'))`` is (1 + time | subject).
    """
    group: str
    terms: tuple[str, ...] = ('1',)

    def __post_init__(self):
        if not self.terms:
            raise ValueError("RandomEffect needs at least one term")

    @property
    def label(self) -> str:
        return f"({' + '.join(self.terms)} | {self.group})"


@dataclass(frozen=True)
class RandomSmooth:
    """Factor-smooth interaction s(variable, group, bs = "fs", m = 1).

    Every level of ``group`` gets its own smooth of ``variable``, all of
    them shrunk toward zero with a shared wiggliness variance and a
    shared level variance.
    """
    variable: str
    group: str
    k: int = 5

    def __post_init__(self):
        if self.k < 4:
            raise ValueError(f"RandomSmooth basis dimension k must be >= 4, got {self.k}")

    @property
    def label(self) -> str:
        return f"s({self.variable},{self.group})"


@dataclass(frozen=True)
class ModelSpec:
    """Full model formula.

    Attributes:
        response: Response column.
        parametric: Parametric terms (an intercept is always included).
        smooths: Smooth terms.
        random: Random effect and random smooth terms.
        start: Column flagging the first row of each trajectory; only
            used when the model is fitted with AR1 residuals.
    """
    response: str
    parametric: tuple[Parametric, ...] = ()
    smooths: tuple[Smooth, ...] = ()
    random: tuple[RandomEffect | RandomSmooth, ...] = field(default_factory=tuple)
    start: str = 'start'

    def variables(self) -> tuple[str, ...]:
        """Every data column the formula refers to, in order of appearance."""
        names = [self.response]
        for term in self.parametric:
            names.append(term.variable)
        for sm in self.smooths:
            names.append(sm.variable)
            if sm.by is not None:
                names.append(sm.by)
        for re in self.random:
            if isinstance(re, RandomSmooth):
                names.extend([re.variable, re.group])
            else:
                names.append(re.group)
                names.extend(t for t in re.terms if t != '1')
        seen: dict[str, None] = {}
        for name in names:
            seen.setdefault(name, None)
        return tuple(seen)

    def formula(self) -> str:
        """R-like rendering, used in summaries."""
        rhs = [t.label for t in self.parametric]
        rhs += [s.label for s in self.smooths]
        for re in self.random:
            if isinstance(re, RandomSmooth):
                rhs.append(f's({re.variable}, {re.group}, bs = "fs", m = 1)')
            else:
                rhs.append(re.label)
        return f"{self.response} ~ {' + '.join(rhs) if rhs else '1'}"

    def drop(self, variable: str) -> ModelSpec:
        """Nested model without the terms that involve ``variable``.

        Removes parametric terms on ``variable`` and smooths whose ``by``
        is ``variable``. Used for likelihood-ratio comparisons.
        """
        return replace(
            self,
            parametric=tuple(t for t in self.parametric if t.variable != variable),
            smooths=tuple(s for s in self.smooths if s.by != variable),
        )
