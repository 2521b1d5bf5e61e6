"""
Design construction and validation for GAMMs.

GAMMDesign turns a ModelSpec and a DataFrame into the mixed-model
representation of the GAMM: the response y, the fixed effects matrix X
(intercept, parametric terms and the unpenalized parts of the smooths),
the random blocks (penalized parts of the smooths, random effects,
factor smooths) and the layout of every term across them.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from pygamm.core.exceptions import SingularMatrixError, ValidationError
from pygamm.core.validation import check_1d, check_columns, check_finite
from pygamm.gamm._common import (
    ROLE_INTERCEPT, ROLE_MAIN_EFFECT, ROLE_SMOOTH, ROLE_DIFFERENCE_SMOOTH,
    ROLE_RANDOM, TermLayout,
)
from pygamm.gamm._random_effects import (
    RandomBlock, diagonal_block, unstructured_block,
)
from pygamm.gamm._smooth import (
    absorb_sum_to_zero, bspline_basis, difference_penalty, mixed_representation,
)
from pygamm.gamm.terms import ModelSpec, RandomEffect, RandomSmooth, Smooth


def is_factor(series: pd.Series) -> bool:
    """Categorical, string, object or boolean columns are factors."""
    return not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series)


def factor_levels(series: pd.Series) -> tuple[NDArray, list[str]]:
    """String-coded values and ordered levels of a factor column.

    Categorical columns keep their category order (restricted to the
    levels present); other columns use sorted order. The first level is
    the treatment-coding reference.
    """
    values = series.astype(str).to_numpy()
    present = set(values)
    if isinstance(series.dtype, pd.CategoricalDtype):
        levels = [str(c) for c in series.cat.categories if str(c) in present]
    else:
        levels = sorted(present)
    return values, levels


@dataclass(frozen=True)
class GAMMDesign:
    """Validated mixed-model design of a GAMM.

    Attributes:
        y: Response vector (n,).
        X: Fixed effects design matrix (n, p).
        blocks: Random blocks in Z column order.
        layouts: Placement of every non-random term.
        coefficient_names: Names of the X columns.
        start: Trajectory start flags (n,), or None.
        n_groups: Grouping factor → number of levels.
        spec: The formula the design was built from.
    """
    y: NDArray
    X: NDArray
    blocks: tuple[RandomBlock, ...]
    layouts: tuple[TermLayout, ...]
    coefficient_names: tuple[str, ...]
    start: NDArray | None
    n_groups: dict[str, int]
    spec: ModelSpec

    @property
    def n(self) -> int:
        return self.y.shape[0]

    @property
    def p(self) -> int:
        return self.X.shape[1]

    @property
    def q(self) -> int:
        return sum(b.q for b in self.blocks)

    @staticmethod
    def from_dataframe(
        frame: pd.DataFrame,
        spec: ModelSpec,
        start: NDArray | None = None,
    ) -> GAMMDesign:
        """Build and validate the design.

        Args:
            frame: Data with every column the formula refers to.
            spec: Model formula.
            start: Optional trajectory start flags (n,).

        Returns:
            Validated GAMMDesign.

        Raises:
            ValidationError: On missing columns, missing values, too few
                observations or grouping levels.
            SingularMatrixError: If the fixed effects design is
                rank-deficient.
        """
        variables = spec.variables()
        check_columns(frame, variables, "data")
        n_missing = int(frame[list(variables)].isna().sum().sum())
        if n_missing:
            raise ValidationError(
                f"data: {n_missing} missing value(s) in model columns {list(variables)}"
            )
        if is_factor(frame[spec.response]):
            raise ValidationError(
                f"response '{spec.response}' must be numeric, "
                f"got dtype {frame[spec.response].dtype}"
            )

        y = frame[spec.response].to_numpy(dtype=np.float64)
        n = y.shape[0]
        if n < 3:
            raise ValidationError(f"Need at least 3 observations, got {n}")
        check_finite(y, spec.response)

        builder = _DesignBuilder(frame, n)
        builder.add_intercept()
        for term in spec.parametric:
            builder.add_parametric(term.variable)
        for smooth in spec.smooths:
            if smooth.by is None:
                builder.add_smooth(smooth)
            else:
                builder.add_difference_smooths(smooth)
        for re in spec.random:
            if isinstance(re, RandomSmooth):
                builder.add_random_smooth(re)
            else:
                builder.add_random_effect(re)

        X = np.column_stack(builder.columns)
        p = X.shape[1]
        if n <= p:
            raise ValidationError(
                f"Need more observations than fixed effect columns, "
                f"got n={n}, p={p}"
            )
        rank = int(np.linalg.matrix_rank(X))
        if rank < p:
            raise SingularMatrixError(
                f"fixed effects design is rank-deficient (rank={rank}, expected={p})",
                matrix_name="X",
                rank=rank,
                expected_rank=p,
            )

        if start is not None:
            start = np.asarray(start, dtype=bool)
            check_1d(start, "start")
            if start.shape != (n,):
                raise ValidationError(
                    f"start has shape {start.shape}, expected ({n},)"
                )

        return GAMMDesign(
            y=y,
            X=X,
            blocks=tuple(builder.blocks),
            layouts=tuple(builder.layouts),
            coefficient_names=tuple(builder.names),
            start=start,
            n_groups=builder.n_groups,
            spec=spec,
        )


class _DesignBuilder:
    """Accumulates X columns, random blocks and term layouts."""

    def __init__(self, frame: pd.DataFrame, n: int):
        self.frame = frame
        self.n = n
        self.columns: list[NDArray] = []
        self.names: list[str] = []
        self.layouts: list[TermLayout] = []
        self.blocks: list[RandomBlock] = []
        self.n_groups: dict[str, int] = {}

    def _add_fixed(self, cols: NDArray, names: list[str]) -> tuple[int, ...]:
        cols = np.asarray(cols, dtype=np.float64).reshape(self.n, -1)
        first = len(self.columns)
        for j in range(cols.shape[1]):
            self.columns.append(cols[:, j])
        self.names.extend(names)
        return tuple(range(first, first + cols.shape[1]))

    def _add_block(self, block: RandomBlock) -> int:
        self.blocks.append(block)
        if block.group is not None:
            self.n_groups[block.group] = block.n_groups
        return len(self.blocks) - 1

    def add_intercept(self) -> None:
        idx = self._add_fixed(np.ones(self.n), ['(Intercept)'])
        self.layouts.append(TermLayout(
            label='(Intercept)', role=ROLE_INTERCEPT, variable=None,
            by=None, level=None, fixed_columns=idx, block=None,
        ))

    def add_parametric(self, variable: str) -> None:
        series = self.frame[variable]
        if not is_factor(series):
            idx = self._add_fixed(series.to_numpy(dtype=np.float64), [variable])
            self.layouts.append(TermLayout(
                label=variable, role=ROLE_MAIN_EFFECT, variable=variable,
                by=None, level=None, fixed_columns=idx, block=None,
            ))
            return

        values, levels = factor_levels(series)
        for level in levels[1:]:
            label = f"{variable}{level}"
            idx = self._add_fixed((values == level).astype(np.float64), [label])
            self.layouts.append(TermLayout(
                label=label, role=ROLE_MAIN_EFFECT, variable=variable,
                by=None, level=level, fixed_columns=idx, block=None,
            ))

    def _add_penalized(
        self,
        B: NDArray,
        label: str,
        role: str,
        variable: str,
        by: str | None,
        level: str | None,
    ) -> None:
        S = difference_penalty(B.shape[1], 2)
        Bc, Sc = absorb_sum_to_zero(B, S)
        X_fixed, Z_random = mixed_representation(Bc, Sc)
        names = [f"{label}.{j + 1}" for j in range(X_fixed.shape[1])]
        idx = self._add_fixed(X_fixed, names)
        block = self._add_block(diagonal_block(label, role, Z_random, components=(label,)))
        self.layouts.append(TermLayout(
            label=label, role=role, variable=variable,
            by=by, level=level, fixed_columns=idx, block=block,
        ))

    def add_smooth(self, smooth: Smooth) -> None:
        x = self.frame[smooth.variable].to_numpy(dtype=np.float64)
        B = bspline_basis(x, smooth.k)
        self._add_penalized(B, f"s({smooth.variable})", ROLE_SMOOTH,
                            smooth.variable, None, None)

    def add_difference_smooths(self, smooth: Smooth) -> None:
        by_series = self.frame[smooth.by]
        if not is_factor(by_series):
            raise ValidationError(
                f"smooth by-variable '{smooth.by}' must be a factor, "
                f"got dtype {by_series.dtype}"
            )
        x = self.frame[smooth.variable].to_numpy(dtype=np.float64)
        B = bspline_basis(x, smooth.k)
        values, levels = factor_levels(by_series)
        for level in levels[1:]:
            indicator = (values == level).astype(np.float64)
            label = f"s({smooth.variable}):{smooth.by}{level}"
            self._add_penalized(B * indicator[:, np.newaxis], label,
                                ROLE_DIFFERENCE_SMOOTH, smooth.variable,
                                smooth.by, level)

    def _levels(self, group: str) -> tuple[NDArray, int]:
        group_ids, uniques = pd.factorize(self.frame[group].astype(str), sort=True)
        if len(uniques) < 2:
            raise ValidationError(
                f"Group '{group}' has only {len(uniques)} level(s), need at least 2"
            )
        return group_ids, len(uniques)

    def add_random_effect(self, re: RandomEffect) -> None:
        self._levels(re.group)
        random_data = {
            t: self.frame[t].to_numpy(dtype=np.float64)
            for t in re.terms if t != '1'
        }
        block = unstructured_block(
            re.label, re.group, self.frame[re.group].astype(str).to_numpy(),
            re.terms, random_data,
        )
        self._add_block(block)

    def add_random_smooth(self, re: RandomSmooth) -> None:
        group_ids, J = self._levels(re.group)
        x = self.frame[re.variable].to_numpy(dtype=np.float64)
        B = bspline_basis(x, re.k)
        X_null, Z_range = mixed_representation(B, difference_penalty(re.k, 1))

        onehot = np.zeros((self.n, J), dtype=np.float64)
        onehot[np.arange(self.n), group_ids] = 1.0

        # Column layout: all levels' null-space columns, then all levels'
        # range columns (component-major)
        Z_null = (X_null[:, :, np.newaxis] * onehot[:, np.newaxis, :]).reshape(self.n, -1)
        Z_wiggly = (Z_range[:, :, np.newaxis] * onehot[:, np.newaxis, :]).reshape(self.n, -1)
        Z = np.hstack([Z_null, Z_wiggly])
        theta_map = np.concatenate([
            np.zeros(Z_null.shape[1], dtype=np.intp),
            np.ones(Z_wiggly.shape[1], dtype=np.intp),
        ])
        self._add_block(diagonal_block(
            re.label, ROLE_RANDOM, Z,
            components=('level', 'shape'),
            theta_map=theta_map,
            n_groups=J,
            group=re.group,
        ))
