import pytest
from hydra import compose, initialize
from omegaconf import OmegaConf

from backends.accelerated import AcceleratedBackend
from backends.reference import ReferenceBackend
from core.config import GammaConfig, RuntimeConfig
from core.errors import UnsupportedScalarType
from core.scalar import ScalarType
from core.session import Session
from main import TASK_MAP


def _make_cfg(name="selfcheck", backend="reference", **task):
    return OmegaConf.create({
        "name": name,
        "backend": backend,
        "scalar_type": "f64",
        "device": "cpu",
        "dispatch": {"dimension_threshold": 32, "batch_threshold": 256},
        "gamma": {"max_dimension": 8, "memory_limit_mb": 16},
        "task": task,
    })


class TestRuntimeConfig:
    def test_defaults(self):
        config = RuntimeConfig.from_cfg(None)
        assert config.backend == "auto"
        assert config.scalar_type is ScalarType.F64
        assert config.dispatch.dimension_threshold == 32
        assert config.gamma.max_dimension == 12
        assert config.task == {}

    def test_from_dictconfig(self):
        config = RuntimeConfig.from_cfg(_make_cfg(nodes=7))
        assert config.backend == "reference"
        assert config.device == "cpu"
        assert config.gamma.max_dimension == 8
        assert config.gamma.incremental_dimension == 10
        assert config.gamma.memory_limit_bytes == 16 * 1024 * 1024
        assert config.task == {"nodes": 7}

    def test_from_plain_dict(self):
        config = RuntimeConfig.from_cfg({"scalar_type": "complex32", "backend": "accelerated"})
        assert config.scalar_type is ScalarType.COMPLEX32
        assert config.backend == "accelerated"

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            RuntimeConfig(backend="gpu-please")
        with pytest.raises(UnsupportedScalarType):
            RuntimeConfig(scalar_type="int8")

    def test_memory_limit(self):
        assert GammaConfig(memory_limit_mb=1).memory_limit_bytes == 1 << 20

    def test_shipped_config_composes(self):
        with initialize(config_path="../conf", version_base=None):
            cfg = compose(config_name="config", overrides=["backend=reference", "task.nodes=9"])
        config = RuntimeConfig.from_cfg(cfg)
        assert config.name in TASK_MAP
        assert config.backend == "reference"
        assert config.task["nodes"] == 9
        assert config.task["grid"] == [16, 16]


class TestSession:
    def test_reference_only(self):
        session = Session(RuntimeConfig(backend="reference"))
        assert session.accelerated is None
        assert session.backend_for(1000, 1000) is session.reference

    def test_explicit_accelerated(self):
        session = Session(RuntimeConfig(backend="accelerated", device="cpu", scalar_type="f32"))
        backend = session.backend_for()
        assert isinstance(backend, AcceleratedBackend)
        assert session.accelerated is backend
        with pytest.raises(UnsupportedScalarType):
            session.backend_for(scalar_type=ScalarType.F64)

    def test_auto_dispatch(self):
        session = Session(RuntimeConfig(backend="auto", device="cpu", scalar_type="f32"))
        assert isinstance(session.backend_for(4, 1), ReferenceBackend)
        assert isinstance(session.backend_for(64, 1), AcceleratedBackend)
        assert isinstance(session.backend_for(64, 1, "f64"), ReferenceBackend)

    def test_gamma_limits_follow_config(self):
        session = Session(RuntimeConfig.from_cfg(_make_cfg()))
        assert session.gammas.max_dimension == 8
        assert session.gammas.memory_limit_bytes == 16 * 1024 * 1024


class TestTasks:
    def test_selfcheck(self):
        results = TASK_MAP["selfcheck"](_make_cfg(metric="minkowski", dimension=4, samples=4)).run()
        assert results["backend"] == "reference"
        assert results["homomorphism_error"] < 1e-10
        assert results["roundtrip_error"] < 1e-12
        assert results["clifford_error"] < 1e-12

    def test_spectral(self):
        results = TASK_MAP["spectral"](_make_cfg("spectral", graph="complete", nodes=5)).run()
        assert results["spectral_gap"] == pytest.approx(1.25, abs=1e-12)
        assert results["nodes"] == 5

    @pytest.mark.parametrize("graph", ["complete", "cycle"])
    def test_diffusion(self, graph):
        results = TASK_MAP["diffusion"](_make_cfg("diffusion", graph=graph, nodes=6, steps=12)).run()
        assert results["mass_drift"] < 1e-12

    def test_curvature(self):
        polar = TASK_MAP["curvature"](_make_cfg("curvature", chart="polar", grid=[8, 8], spacing=0.1)).run()
        assert polar["max_abs_christoffel"] == pytest.approx(1.6, abs=1e-9)
        flat = TASK_MAP["curvature"](
            _make_cfg("curvature", chart="flat", metric="minkowski", dimension=4, grid=[4, 4], spacing=0.1)
        ).run()
        assert flat["max_abs_christoffel"] < 1e-12

    def test_unknown_choices(self):
        with pytest.raises(ValueError):
            TASK_MAP["curvature"](_make_cfg("curvature", chart="sphere"))
        with pytest.raises(ValueError):
            TASK_MAP["spectral"](_make_cfg("spectral", graph="star"))
        with pytest.raises(ValueError):
            TASK_MAP["selfcheck"](_make_cfg(metric="hyperbolic"))
