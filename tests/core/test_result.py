"""
Tests for the Result[P] envelope and the section timer.

Validates:
    - Generic payloads, frozen immutability
    - Default factories (warnings, provenance)
    - has_warning()
    - Timer section accumulation
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from pygamm import __version__
from pygamm.core.result import Result, _default_provenance
from pygamm.core.timing import Timer


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    value: float


def _result(**kwargs):
    defaults = dict(params=FakeParams(value=1.0), info={}, timing=None, backend_name="cpu")
    defaults.update(kwargs)
    return Result(**defaults)


class TestResultConstruction:

    def test_basic_creation(self):
        result = _result(
            params=FakeParams(value=42.0),
            info={"method": "REML"},
            timing={"total_seconds": 0.01},
            backend_name="cpu_gamm",
        )
        assert result.params.value == 42.0
        assert result.info["method"] == "REML"
        assert result.timing["total_seconds"] == 0.01
        assert result.backend_name == "cpu_gamm"

    def test_warnings_default_empty(self):
        result = _result()
        assert result.warnings == ()
        assert isinstance(result.warnings, tuple)

    def test_has_warning(self):
        result = _result(warnings=("Optimizer did not converge: ABNORMAL",))
        assert result.has_warning("did not converge")
        assert not result.has_warning("singular")


class TestProvenance:

    def test_auto_generated(self):
        prov = _result().provenance
        assert prov["pygamm_version"] == __version__
        for key in ("numpy_version", "scipy_version", "pandas_version"):
            assert key in prov

    def test_explicit_override(self):
        result = _result(provenance={"custom": "metadata"})
        assert result.provenance == {"custom": "metadata"}

    def test_default_provenance_values_are_strings(self):
        assert all(isinstance(v, str) for v in _default_provenance().values())


class TestImmutability:

    def test_cannot_set_params(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.params = FakeParams(value=2.0)

    def test_cannot_set_warnings(self):
        result = _result()
        with pytest.raises(FrozenInstanceError):
            result.warnings = ("new warning",)


class TestTimer:

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section('fit'):
            pass
        with timer.section('fit'):
            pass
        timer.stop()
        timing = timer.result()
        assert set(timing) == {'total_seconds', 'fit'}
        assert timing['total_seconds'] >= timing['fit'] >= 0.0

    def test_result_before_stop_raises(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()

    def test_stop_before_start_raises(self):
        with pytest.raises(RuntimeError):
            Timer().stop()

    def test_elapsed_running_then_frozen(self):
        timer = Timer().start()
        running = timer.elapsed
        assert running >= 0.0
        timer.stop()
        frozen = timer.elapsed
        assert frozen >= running
        assert timer.elapsed == frozen == timer.result()['total_seconds']
