import pytest

from chat_core.config.settings import Settings
from chat_core.domain.attempts import FailureKind
from chat_core.resilience.retry import RetryPolicy


def test_rate_limited_exponential_backoff():
    policy = RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=8.0)
    first = policy.should_retry(FailureKind.RATE_LIMITED, 1)
    second = policy.should_retry(FailureKind.RATE_LIMITED, 2)
    third = policy.should_retry(FailureKind.RATE_LIMITED, 3)
    assert (first.retry, first.delay) == (True, 0.5)
    assert (second.retry, second.delay) == (True, 1.0)
    assert not third.retry


def test_server_error_uses_same_budget():
    policy = RetryPolicy(max_attempts=2)
    assert policy.should_retry(FailureKind.SERVER_ERROR, 1).retry
    assert not policy.should_retry(FailureKind.SERVER_ERROR, 2).retry


def test_backoff_delay_is_capped():
    policy = RetryPolicy(max_attempts=10, base_delay=1.0, max_delay=3.0)
    assert policy.backoff_delay(5) == 3.0


def test_timeout_has_smaller_budget_and_fixed_delay():
    policy = RetryPolicy(max_attempts=5, timeout_max_attempts=2, timeout_delay=0.25)
    first = policy.should_retry(FailureKind.TIMEOUT, 1)
    assert (first.retry, first.delay) == (True, 0.25)
    assert not policy.should_retry(FailureKind.TIMEOUT, 2).retry


@pytest.mark.parametrize(
    "kind",
    [FailureKind.AUTH_ERROR, FailureKind.BAD_RESPONSE, FailureKind.NETWORK_ERROR, FailureKind.NOT_CONFIGURED],
)
def test_non_transient_failures_never_retry(kind):
    assert not RetryPolicy().should_retry(kind, 1).retry


def test_explicit_budget_overrides_policy():
    policy = RetryPolicy(max_attempts=5)
    assert not policy.should_retry(FailureKind.RATE_LIMITED, 1, max_attempts=1).retry


def test_best_effort_policy_from_settings():
    cfg = Settings(relay_max_attempts=1, timeout_max_attempts=2)
    policy = RetryPolicy.best_effort(cfg)
    assert policy.max_attempts == 1
    assert not policy.should_retry(FailureKind.RATE_LIMITED, 1).retry
    assert not policy.should_retry(FailureKind.TIMEOUT, 1).retry


def test_rate_limited_provider_policy_from_settings():
    cfg = Settings(retry_max_attempts=4, retry_base_delay=0.1, retry_max_delay=1.0)
    policy = RetryPolicy.for_rate_limited_provider(cfg)
    assert policy.max_attempts == 4
    assert policy.should_retry(FailureKind.RATE_LIMITED, 3).delay == pytest.approx(0.4)
