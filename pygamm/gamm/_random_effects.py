"""
Random effect blocks, Z matrix construction, and Λ_θ parameterization.

Every penalized part of the model is a RandomBlock: the penalized range
space of a smooth, a lme4-style random intercept/slope term, or a factor
smooth. Two covariance structures cover all of them:

    diagonal:      Λ_k = diag(θ_k[theta_map])   (i.i.d. columns sharing
                   one or more variance parameters)
    unstructured:  Λ_k = T_k ⊗ I_J              (lme4's (1 + x | g))

The θ parameterization follows Bates et al. (2015): θ holds the elements
of the Cholesky factor of the *relative* covariance (covariance / σ²).
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

KIND_DIAGONAL = 'diagonal'
KIND_UNSTRUCTURED = 'unstructured'


@dataclass(frozen=True)
class RandomBlock:
    """One block of the random effects design.

    Attributes:
        label: Term label the block belongs to.
        role: Semantic role of the owning term ('smooth',
            'difference_smooth' or 'random').
        kind: KIND_DIAGONAL or KIND_UNSTRUCTURED.
        Z: Design matrix block (n, q).
        components: Names of the variance components, one per θ for
            diagonal blocks, one per term for unstructured blocks.
        theta_map: Diagonal blocks: index into the block's θ for every
            column. None for unstructured blocks.
        n_groups: Number of grouping levels (1 for plain smooths).
        group: Grouping factor name, None for plain smooths.
    """
    label: str
    role: str
    kind: str
    Z: NDArray
    components: tuple[str, ...]
    theta_map: NDArray | None
    n_groups: int
    group: str | None

    @property
    def q(self) -> int:
        return self.Z.shape[1]

    @property
    def n_terms(self) -> int:
        return len(self.components)

    @property
    def theta_size(self) -> int:
        if self.kind == KIND_DIAGONAL:
            return self.n_terms
        return self.n_terms * (self.n_terms + 1) // 2


def diagonal_block(
    label: str,
    role: str,
    Z: NDArray,
    *,
    components: tuple[str, ...] = ('s',),
    theta_map: NDArray | None = None,
    n_groups: int = 1,
    group: str | None = None,
) -> RandomBlock:
    """Build a diagonal block; by default one shared variance for all columns."""
    Z = np.asarray(Z, dtype=np.float64)
    if theta_map is None:
        theta_map = np.zeros(Z.shape[1], dtype=np.intp)
    theta_map = np.asarray(theta_map, dtype=np.intp)
    if theta_map.shape != (Z.shape[1],):
        raise ValueError(
            f"theta_map has shape {theta_map.shape}, expected ({Z.shape[1]},)"
        )
    return RandomBlock(
        label=label,
        role=role,
        kind=KIND_DIAGONAL,
        Z=Z,
        components=components,
        theta_map=theta_map,
        n_groups=n_groups,
        group=group,
    )


def unstructured_block(
    label: str,
    group_name: str,
    group_raw: NDArray,
    terms: tuple[str, ...],
    random_data: dict[str, NDArray],
) -> RandomBlock:
    """Build an lme4-style block (terms | group).

    Column layout is term-major: [term0_group0, term0_group1, ...,
    term1_group0, ...], matching Λ = T ⊗ I_J.

    Raises:
        ValueError: If a slope term has no data or the wrong length.
    """
    group_raw = np.asarray(group_raw)
    n = group_raw.shape[0]
    unique_levels, group_ids = np.unique(group_raw, return_inverse=True)
    n_groups = len(unique_levels)

    Z = np.zeros((n, n_groups * len(terms)), dtype=np.float64)
    rows = np.arange(n)
    for t_idx, term in enumerate(terms):
        cols = t_idx * n_groups + group_ids
        if term == '1':
            Z[rows, cols] = 1.0
            continue
        if term not in random_data:
            raise ValueError(
                f"Random slope term '{term}' requires data, but '{term}' "
                f"was not found. Available: {list(random_data.keys())}"
            )
        values = np.asarray(random_data[term], dtype=np.float64)
        if values.shape[0] != n:
            raise ValueError(
                f"Random data '{term}' has {values.shape[0]} elements, "
                f"expected {n}"
            )
        Z[rows, cols] = values

    names = tuple('(Intercept)' if t == '1' else t for t in terms)
    return RandomBlock(
        label=label,
        role='random',
        kind=KIND_UNSTRUCTURED,
        Z=Z,
        components=names,
        theta_map=None,
        n_groups=n_groups,
        group=group_name,
    )


def build_z_matrix(blocks: list[RandomBlock], n: int) -> NDArray:
    """Concatenate Z blocks: Z = [Z_1 | Z_2 | ...], shape (n, Σ q_k)."""
    if not blocks:
        return np.zeros((n, 0), dtype=np.float64)
    return np.hstack([block.Z for block in blocks])


def _cholesky_factor(theta_k: NDArray, q: int) -> NDArray:
    """q × q lower-triangular factor from its row-major packed elements."""
    T = np.zeros((q, q), dtype=np.float64)
    T[np.tril_indices(q)] = theta_k
    return T


def build_lambda(theta: NDArray, blocks: list[RandomBlock]) -> NDArray:
    """Build block-diagonal Λ_θ from the θ parameter vector.

    Args:
        theta: Parameter vector of length Σ theta_size.
        blocks: Random blocks, in the column order of Z.

    Returns:
        Λ of shape (Σ q_k, Σ q_k).
    """
    total_q = sum(b.q for b in blocks)
    Lambda = np.zeros((total_q, total_q), dtype=np.float64)

    theta_offset = 0
    col_offset = 0
    for block in blocks:
        theta_k = theta[theta_offset:theta_offset + block.theta_size]
        theta_offset += block.theta_size

        if block.kind == KIND_DIAGONAL:
            idx = np.arange(col_offset, col_offset + block.q)
            Lambda[idx, idx] = theta_k[block.theta_map]
        else:
            q, J = block.n_terms, block.n_groups
            T = _cholesky_factor(theta_k, q)
            # T ⊗ I_J: term r's columns start at col_offset + r*J
            for r in range(q):
                for c in range(r + 1):
                    if T[r, c] != 0.0:
                        rows = col_offset + r * J + np.arange(J)
                        cols = col_offset + c * J + np.arange(J)
                        Lambda[rows, cols] = T[r, c]
        col_offset += block.q

    return Lambda


def theta_lower_bounds(blocks: list[RandomBlock]) -> NDArray:
    """Lower bounds for θ: 0 on diagonals (variances ≥ 0), -inf elsewhere."""
    bounds = []
    for block in blocks:
        if block.kind == KIND_DIAGONAL:
            bounds.extend([0.0] * block.n_terms)
            continue
        q = block.n_terms
        for row in range(q):
            for col in range(row + 1):
                bounds.append(0.0 if row == col else -np.inf)
    return np.array(bounds, dtype=np.float64)


def theta_start(blocks: list[RandomBlock]) -> NDArray:
    """Starting θ: 1 on diagonals (σ_b/σ = 1), 0 off-diagonal."""
    theta0 = []
    for block in blocks:
        if block.kind == KIND_DIAGONAL:
            theta0.extend([1.0] * block.n_terms)
            continue
        q = block.n_terms
        for row in range(q):
            for col in range(row + 1):
                theta0.append(1.0 if row == col else 0.0)
    return np.array(theta0, dtype=np.float64)


def slope_start_variants(theta0: NDArray, blocks: list[RandomBlock]) -> list[NDArray]:
    """Extra starting points with shrunken slope variances.

    The profiled deviance can have local minima when an unstructured
    block has more than one term; the caller tries each start.
    """
    starts = []
    for scale in (0.2, 0.5):
        alt = theta0.copy()
        idx = 0
        for block in blocks:
            if block.kind == KIND_DIAGONAL:
                idx += block.theta_size
                continue
            q = block.n_terms
            for row in range(q):
                for col in range(row + 1):
                    if row == col and row > 0:
                        alt[idx] = scale
                    idx += 1
        starts.append(alt)
    return starts


def block_covariances(
    theta: NDArray,
    sigma_sq: float,
    blocks: list[RandomBlock],
) -> list[NDArray]:
    """Covariance σ² T T' of each block's components.

    For diagonal blocks this is diag(σ² θ_k²), one entry per variance
    parameter; for unstructured blocks the full q × q matrix.
    """
    covs = []
    offset = 0
    for block in blocks:
        theta_k = theta[offset:offset + block.theta_size]
        offset += block.theta_size
        if block.kind == KIND_DIAGONAL:
            covs.append(np.diag(sigma_sq * theta_k ** 2))
        else:
            T = _cholesky_factor(theta_k, block.n_terms)
            covs.append(sigma_sq * (T @ T.T))
    return covs
