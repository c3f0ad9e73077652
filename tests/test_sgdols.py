import pytest
import torch

from sgd_ols import (
    SGDOLS,
    DimensionMismatch,
    NumericalInstabilityWarning,
    ObjectiveEvaluationError,
    SGDOLSState,
    init_state,
    sgdols,
)
from sgd_ols.models import AutogradObjective, Quadratic
from sgd_ols.opts._utils.general import _get_lr, _validate_config

DTYPE = torch.float64


class RecordingOracle:
    """Linear gradient `A w + c`; remembers every point it was asked about."""

    def __init__(self, A, c):
        self.A = A
        self.c = c
        self.points = []
        self.grads = []

    def evaluate(self, w):
        g = self.A @ w + self.c
        self.points.append(w.clone())
        self.grads.append(g.clone())
        return 0.5 * torch.dot(w, self.A @ w) + torch.dot(self.c, w), g


def _bowl(w):
    return 0.5 * torch.dot(w, w), w.clone()


def test_init_state():
    x = torch.tensor([1.0, -2.0, 3.0], dtype=DTYPE)
    state = init_state(SGDOLSState(), x)

    assert state.eval_counter == 0
    assert state.num_parameters == 3
    torch.testing.assert_close(state.P, torch.eye(4, dtype=DTYPE))
    torch.testing.assert_close(state.B, torch.zeros(4, 3, dtype=DTYPE))
    torch.testing.assert_close(state.G, torch.eye(3, dtype=DTYPE))
    torch.testing.assert_close(state.Gt, torch.eye(3, dtype=DTYPE))
    torch.testing.assert_close(state.parameters_slow, x)
    assert state.parameters_slow.data_ptr() != x.data_ptr()
    assert state.n_unstable == 0


def test_empty_state_has_no_matrices():
    state = SGDOLSState()
    assert state.P is None and state.G is None
    assert state.n_unstable == 0


def test_init_state_keeps_existing_fields():
    x = torch.zeros(2, dtype=DTYPE)
    state = init_state(SGDOLSState(), x)
    state.eval_counter = 7
    state.P.mul_(3.0)
    P = state.P

    init_state(state, torch.ones(2, dtype=DTYPE))

    assert state.eval_counter == 7
    assert state.P is P
    torch.testing.assert_close(state.P, 3.0 * torch.eye(3, dtype=DTYPE))
    torch.testing.assert_close(state.parameters_slow, x)


def test_dimension_mismatch():
    state = SGDOLSState()
    sgdols(_bowl, torch.ones(2, dtype=DTYPE), None, state)

    with pytest.raises(DimensionMismatch):
        sgdols(_bowl, torch.ones(3, dtype=DTYPE), None, state)
    with pytest.raises(DimensionMismatch):
        sgdols(_bowl, torch.ones(1, 2, dtype=DTYPE), None, SGDOLSState())


def test_gradient_size_mismatch():
    def oracle(w):
        return torch.tensor(0.0), torch.zeros(w.numel() + 1, dtype=DTYPE)

    state = SGDOLSState()
    with pytest.raises(DimensionMismatch):
        sgdols(oracle, torch.ones(2, dtype=DTYPE), None, state)
    assert state.eval_counter == 0


def test_counter_and_first_step():
    x0 = torch.tensor([1.0, 2.0], dtype=DTYPE)
    x = x0.clone()
    state = SGDOLSState()

    x, fx = sgdols(_bowl, x, None, state)

    assert state.eval_counter == 1
    # fx is observed before the update
    assert float(fx) == pytest.approx(2.5)
    # G = Gt = I and clr = 1 on the first call
    torch.testing.assert_close(state.parameters_slow, torch.zeros(2, dtype=DTYPE))
    torch.testing.assert_close(x, state.parameters_slow)

    for k in range(2, 6):
        sgdols(_bowl, x, None, state)
        assert state.eval_counter == k


def test_x_is_updated_in_place():
    x = torch.ones(3, dtype=DTYPE)
    x_ref = x
    out, _ = sgdols(_bowl, x, None, SGDOLSState())
    assert out is x_ref


def test_averaging_identity():
    gen = torch.Generator().manual_seed(0)
    A = torch.diag(torch.tensor([0.5, 1.0, 2.0], dtype=DTYPE))
    oracle = Quadratic(A, noise_std=0.1, generator=gen)
    x = torch.tensor([1.0, -1.0, 0.5], dtype=DTYPE)
    config = {"learning_rate": 0.3}
    state = SGDOLSState()

    history = []
    for _ in range(25):
        x, _ = sgdols(oracle, x, config, state)
        history.append(state.parameters_slow.clone())
        torch.testing.assert_close(x, torch.stack(history).mean(dim=0))


def test_G_stays_symmetric_pair():
    gen = torch.Generator().manual_seed(1)
    A = torch.tensor([[1.0, 0.2], [0.2, 0.5]], dtype=DTYPE)
    oracle = Quadratic(A, torch.tensor([0.3, -0.1], dtype=DTYPE), 0.05, gen)
    x = torch.tensor([2.0, -1.0], dtype=DTYPE)
    state = SGDOLSState()

    for _ in range(30):
        x, _ = sgdols(oracle, x, {"learning_rate": 0.5}, state)
        torch.testing.assert_close(state.Gt, state.G.T, rtol=1e-6, atol=1e-12)


def test_regression_matches_batch_ols():
    p = 3
    A = torch.diag(torch.tensor([0.5, 1.0, 1.5], dtype=DTYPE))
    c = torch.tensor([1.0, -1.0, 0.5], dtype=DTYPE)
    oracle = RecordingOracle(A, c)
    x = torch.tensor([1.0, 2.0, -1.0], dtype=DTYPE)
    config = {"learning_rate": 0.1, "sgd_steps": 100}
    state = SGDOLSState()

    for _ in range(p + 5):
        x, _ = sgdols(oracle, x, config, state)

    X = torch.stack(oracle.points)
    X_one = torch.cat([X, torch.ones(X.shape[0], 1, dtype=DTYPE)], dim=1)
    Y = torch.stack(oracle.grads)
    P_batch = torch.linalg.inv(torch.eye(p + 1, dtype=DTYPE) + X_one.T @ X_one)
    B_batch = P_batch @ X_one.T @ Y

    torch.testing.assert_close(state.P, P_batch, rtol=1e-7, atol=1e-10)
    torch.testing.assert_close(state.B, B_batch, rtol=1e-7, atol=1e-10)
    torch.testing.assert_close(
        state.G,
        torch.linalg.inv(torch.eye(p, dtype=DTYPE) + state.B[:p]),
        rtol=1e-6,
        atol=1e-9,
    )


def test_lr_decay_is_strictly_decreasing():
    lrs = [_get_lr(1.0, 0.6, n) for n in range(50)]
    assert lrs[0] == 1.0
    assert all(a > b for a, b in zip(lrs, lrs[1:]))


def test_quadratic_bowl_scenario():
    x = torch.tensor([1.0, 1.0], dtype=DTYPE)
    state = SGDOLSState()
    dists, fxs = [], []

    for _ in range(50):
        x, fx = sgdols(_bowl, x, {"learning_rate": 1.0, "gamma": 0.6}, state)
        dists.append(float(torch.norm(x)))
        fxs.append(float(fx))

    assert state.eval_counter == 50
    assert all(b <= a + 1e-12 for a, b in zip(dists[9:], dists[10:]))
    assert all(b <= a + 1e-12 for a, b in zip(fxs[1:], fxs[2:]))
    assert dists[-1] < 1e-8
    assert torch.isfinite(state.G).all()


def test_sgd_warm_up():
    x0 = torch.tensor([1.0, -1.0], dtype=DTYPE)

    def _doubled_state():
        state = init_state(SGDOLSState(), x0)
        state.G.mul_(2.0)
        state.Gt.mul_(2.0)
        return state

    # Within the warm-up the preconditioner is ignored
    state = _doubled_state()
    sgdols(_bowl, x0.clone(), {"sgd_steps": 1}, state)
    torch.testing.assert_close(state.parameters_slow, torch.zeros(2, dtype=DTYPE))

    # By default every step is preconditioned
    state = _doubled_state()
    sgdols(_bowl, x0.clone(), None, state)
    torch.testing.assert_close(state.parameters_slow, -x0)


def test_non_finite_gradient_leaves_state_untouched():
    calls = []

    def oracle(w):
        calls.append(w)
        g = w.clone()
        if len(calls) == 2:
            g[0] = float("nan")
        return 0.5 * torch.dot(w, w), g

    x = torch.tensor([1.0, 3.0], dtype=DTYPE)
    state = SGDOLSState()
    x, _ = sgdols(oracle, x, {"learning_rate": 0.5}, state)
    snapshot = {
        name: getattr(state, name).clone()
        for name in ["P", "B", "G", "Gt", "parameters_slow"]
    }
    x_before = x.clone()

    with pytest.raises(ObjectiveEvaluationError):
        sgdols(oracle, x, {"learning_rate": 0.5}, state)

    assert state.eval_counter == 1
    torch.testing.assert_close(x, x_before)
    for name, value in snapshot.items():
        torch.testing.assert_close(getattr(state, name), value)


def test_non_finite_value_raises():
    def oracle(w):
        return torch.tensor(float("inf")), w.clone()

    with pytest.raises(ObjectiveEvaluationError):
        sgdols(oracle, torch.ones(2, dtype=DTYPE), None, SGDOLSState())


def test_oracle_errors_propagate():
    def oracle(w):
        raise KeyError("batch")

    state = SGDOLSState()
    with pytest.raises(KeyError):
        sgdols(oracle, torch.ones(2, dtype=DTYPE), None, state)
    assert state.eval_counter == 0


def test_oracle_buffers_do_not_alias_state():
    buf = torch.zeros(2, dtype=DTYPE)

    def oracle(w):
        buf.copy_(w)
        w.add_(100.0)  # the oracle scribbles over its input
        return torch.dot(buf, buf), buf

    x = torch.tensor([1.0, 2.0], dtype=DTYPE)
    state = SGDOLSState()
    sgdols(oracle, x, None, state)
    B = state.B.clone()
    buf.fill_(1e6)

    torch.testing.assert_close(state.B, B)
    torch.testing.assert_close(state.parameters_slow, torch.zeros(2, dtype=DTYPE))


@pytest.mark.parametrize(
    "config",
    [
        {"learning_rate": 0.0},
        {"gamma": 1.0},
        {"gamma": -0.1},
        {"sgd_steps": -1},
        {"sgd_steps": 1.5},
        {"eps": 0.0},
        {"momentum": 0.9},
        {"learning_rate": "1"},
        {"gamma": "0.5"},
        {"eps": True},
    ],
)
def test_invalid_config(config):
    with pytest.raises(ValueError):
        _validate_config(config)


def test_config_defaults():
    assert _validate_config(None) == {
        "learning_rate": 1.0,
        "gamma": 0.6,
        "sgd_steps": 0,
        "eps": 1e-8,
    }
    assert _validate_config({"gamma": 0.0})["gamma"] == 0.0


def test_optimizer_class():
    A = torch.diag(torch.tensor([1.0, 2.0], dtype=DTYPE))
    model = Quadratic(A)
    x = torch.tensor([1.0, 1.0], dtype=DTYPE)
    opt = SGDOLS(model, x, learning_rate=0.5)

    assert opt.state.eval_counter == 0
    fx = opt.step()

    assert float(fx) == pytest.approx(1.5)
    assert opt.state.eval_counter == 1
    assert opt.x is x
    torch.testing.assert_close(x, torch.tensor([0.5, 0.0], dtype=DTYPE))

    with pytest.raises(ValueError):
        SGDOLS(model, x, gamma=2.0)


def test_autograd_objective():
    objective = AutogradObjective(lambda w: (w**2).sum(), p=2)
    x = torch.tensor([1.0, -1.0], dtype=DTYPE)
    state = SGDOLSState()

    x, fx = sgdols(objective, x, {"learning_rate": 0.25}, state)

    assert float(fx) == pytest.approx(2.0)
    # gradient 2 w, step 0.25 * 2 w
    torch.testing.assert_close(x, torch.tensor([0.5, -0.5], dtype=DTYPE))


def test_integer_point_is_rejected():
    calls = []

    def oracle(w):
        calls.append(w)
        return _bowl(w)

    state = SGDOLSState()
    with pytest.raises(TypeError, match="floating point"):
        sgdols(oracle, torch.tensor([1, 1]), None, state)

    assert calls == []
    assert state.eval_counter is None and state.precond is None


def test_failed_call_keeps_eps():
    def oracle(w):
        if state.eval_counter == 1:
            raise ObjectiveEvaluationError("bad batch")
        return _bowl(w)

    state = SGDOLSState()
    sgdols(oracle, torch.ones(2, dtype=DTYPE), None, state)

    with pytest.raises(ObjectiveEvaluationError):
        sgdols(oracle, torch.ones(2, dtype=DTYPE), {"eps": 0.5}, state)

    assert state.precond.eps == 1e-8


def test_instability_warning_points_at_caller():
    def oracle(w):
        return 0.0, torch.tensor([-3.0], dtype=DTYPE)

    state = SGDOLSState()
    # x_one = [1, 1] and y = -3 make the inverse-curvature denominator vanish
    with pytest.warns(NumericalInstabilityWarning) as record:
        sgdols(oracle, torch.ones(1, dtype=DTYPE), None, state)

    assert record[0].filename == __file__
    assert state.n_unstable == 1
    assert state.eval_counter == 1
    torch.testing.assert_close(state.G, torch.eye(1, dtype=DTYPE))
    assert torch.isfinite(state.parameters_slow).all()
