import pytest

from convex_limiting import limiter_types


def test_default_config():
    config = limiter_types.LimiterConfig()

    assert config.newton_tolerance == 1e-10
    assert config.newton_max_iterations == 20
    assert config.relaxation_factor == 2.0
    assert config.batch_size is None
    assert not config.check_limited_state


def test_config_is_hashable():
    # Static pytree metadata has to be hashable for jax.jit
    assert hash(limiter_types.LimiterConfig()) == hash(limiter_types.LimiterConfig())


@pytest.mark.parametrize(
    "kwargs, message",
    [
        (dict(newton_tolerance=0.0), "newton_tolerance"),
        (dict(newton_tolerance=-1e-8), "newton_tolerance"),
        (dict(newton_max_iterations=0), "newton_max_iterations"),
        (dict(relaxation_factor=-0.5), "relaxation_factor"),
        (dict(batch_size=0), "batch_size"),
    ],
)
def test_invalid_config(kwargs, message):
    with pytest.raises(ValueError, match=message):
        limiter_types.LimiterConfig(**kwargs)
