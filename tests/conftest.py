import jax.numpy as jnp
import pytest

from stiffjax.config import set_dtype


@pytest.fixture(autouse=True)
def _ensure_float64():
    """Set float64 precision before every test.

    Tests that exercise single precision switch to float32 themselves; this
    fixture restores the library default for the next test.
    """
    set_dtype(jnp.float64)
