"""
Common data types for GAMM fits.

Contains the frozen parameter payloads that go inside Result[P] envelopes.
Each payload is a pure data container: no methods, no computation.

References:
    Bates, D., Maechler, M., Bolker, B., & Walker, S. (2015).
    Fitting Linear Mixed-Effects Models Using lme4.
    Journal of Statistical Software, 67(1), 1-48.

    Wood, S. N. (2017). Generalized Additive Models: An Introduction
    with R (2nd ed.). CRC Press.
"""

from dataclasses import dataclass

from numpy.typing import NDArray


# Semantic roles of model terms
ROLE_INTERCEPT = 'intercept'
ROLE_MAIN_EFFECT = 'main_effect'
ROLE_SMOOTH = 'smooth'
ROLE_DIFFERENCE_SMOOTH = 'difference_smooth'
ROLE_RANDOM = 'random'


@dataclass(frozen=True)
class TermLayout:
    """Where one model term lives in the design.

    Attributes:
        label: Generated term name ('groupB', 's(time):groupB', ...).
        role: One of the ROLE_* constants.
        variable: Covariate the term is built from.
        by: Factor a difference smooth is conditioned on, else None.
        level: Factor level a treatment-coded term codes, else None.
        fixed_columns: Indices of the term's columns in X.
        block: Index of the term's random block, or None.
    """
    label: str
    role: str
    variable: str | None
    by: str | None
    level: str | None
    fixed_columns: tuple[int, ...]
    block: int | None


@dataclass(frozen=True)
class TermTest:
    """Significance test of one fixed or smooth term.

    Attributes:
        label: Generated term name.
        role: 'intercept', 'main_effect', 'smooth' or 'difference_smooth'.
        variable: Covariate the term is built from.
        by: Conditioning factor of a difference smooth.
        level: Factor level coded by the term.
        estimate: Coefficient estimate (parametric terms only).
        statistic: t value (parametric) or F (smooth).
        df: Reference degrees of freedom of the statistic's numerator
            (1 for parametric terms).
        edf: Effective degrees of freedom of the term.
        p_value: Significance of the term.
    """
    label: str
    role: str
    variable: str | None
    by: str | None
    level: str | None
    estimate: float | None
    statistic: float
    df: float
    edf: float
    p_value: float


@dataclass(frozen=True)
class VarCompSummary:
    """Variance component summary for one random effect term.

    Attributes:
        group: Label of the random block (e.g. 's(time)', '(1 | subject)').
        name: Component name within the block.
        variance: Estimated variance.
        std_dev: Standard deviation (sqrt of variance).
        corr: Correlation with the first term of an unstructured block,
              or None.
    """
    group: str
    name: str
    variance: float
    std_dev: float
    corr: float | None = None


@dataclass(frozen=True)
class GAMMParams:
    """
    Parameter payload for a fitted GAMM.
    """
    # Parametric (fixed) coefficients
    coefficients: NDArray              # β̂ (p,)
    coefficient_names: tuple[str, ...]
    se: NDArray                        # (p,)
    t_values: NDArray                  # (p,)
    p_values: NDArray                  # t distribution with df_residual (p,)

    # Term-level tests (parametric and smooth)
    terms: tuple[TermTest, ...]

    # Variance structure
    var_components: tuple[VarCompSummary, ...]
    residual_variance: float           # σ²
    rho: float | None                  # AR1 coefficient, None without AR1

    # Model fit
    edf: float                         # total effective degrees of freedom
    df_residual: float                 # n - edf
    log_likelihood: float
    reml: bool
    aic: float
    bic: float
    n_obs: int
    n_groups: dict[str, int]           # grouping factor → number of levels

    # Convergence
    converged: bool
    n_iter: int

    # Predictions
    fitted_values: NDArray             # Xβ̂ + Zb̂ (n,)
    residuals: NDArray                 # y - fitted (n,)

    # Internal
    theta: NDArray
