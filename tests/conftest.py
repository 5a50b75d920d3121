import pytest

from backends.accelerated import AcceleratedBackend
from backends.reference import ReferenceBackend
from core.scalar import ScalarType
from isomorphism.gamma import GammaTable


@pytest.fixture
def reference():
    return ReferenceBackend()


@pytest.fixture
def accelerated():
    # Pinned to cpu so parity tests run on any machine
    return AcceleratedBackend(device="cpu")


@pytest.fixture
def gammas():
    return GammaTable()


@pytest.fixture(params=["reference", "accelerated"])
def backend_and_type(request):
    """Each backend paired with the widest real type it holds."""
    if request.param == "reference":
        return ReferenceBackend(), ScalarType.F64
    return AcceleratedBackend(device="cpu"), ScalarType.F32
