from django.test import SimpleTestCase, override_settings
import requests

from core.exceptions import LedgerUnavailableError, PlatformAPIError, RemoteServiceError
from core.retry import RetryExecutor, is_transient_error


class Flaky:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RetryExecutorTest(SimpleTestCase):
    def setUp(self):
        self.sleeps = []
        self.executor = RetryExecutor(max_attempts=3, base_delay=1.0, sleep=self.sleeps.append)

    def test_fails_twice_then_succeeds(self):
        operation = Flaky(RemoteServiceError('reset'), RemoteServiceError('reset'), 'ok')

        self.assertEqual(self.executor.call(operation), 'ok')
        self.assertEqual(operation.calls, 3)
        self.assertEqual(self.sleeps, [1.0, 2.0])

    def test_gives_up_after_max_attempts(self):
        operation = Flaky(*[PlatformAPIError('boom', status_code=502)] * 4)

        with self.assertRaises(PlatformAPIError):
            self.executor.call(operation)

        self.assertEqual(operation.calls, 3)

    def test_client_error_is_raised_immediately(self):
        operation = Flaky(PlatformAPIError('Invalid parameter', status_code=400), 'never')

        with self.assertRaises(PlatformAPIError):
            self.executor.call(operation)

        self.assertEqual(operation.calls, 1)
        self.assertEqual(self.sleeps, [])

    def test_custom_predicate(self):
        executor = RetryExecutor(
            max_attempts=2,
            base_delay=0,
            is_retriable=lambda exc: isinstance(exc, KeyError),
            sleep=self.sleeps.append,
        )
        operation = Flaky(KeyError('x'), 'ok')

        self.assertEqual(executor.call(operation), 'ok')

    def test_passes_arguments_through(self):
        self.assertEqual(self.executor.call(lambda a, b=0: a + b, 2, b=3), 5)

    def test_decorator_form(self):
        operation = Flaky(requests.ConnectionError('refused'), 'ok')

        @self.executor
        def fetch():
            return operation()

        self.assertEqual(fetch(), 'ok')
        self.assertEqual(fetch.__name__, 'fetch')

    @override_settings(RETRY_MAX_ATTEMPTS=5, RETRY_BASE_DELAY=0.25)
    def test_defaults_come_from_settings(self):
        executor = RetryExecutor()

        self.assertEqual(executor.max_attempts, 5)
        self.assertEqual(executor.base_delay, 0.25)


class TransientErrorTest(SimpleTestCase):
    def test_classification(self):
        self.assertTrue(is_transient_error(RemoteServiceError('no status')))
        self.assertTrue(is_transient_error(PlatformAPIError('throttled', status_code=429)))
        self.assertTrue(is_transient_error(PlatformAPIError('rate', status_code=400, transient=True)))
        self.assertTrue(is_transient_error(LedgerUnavailableError('db', status_code=400)))
        self.assertTrue(is_transient_error(requests.Timeout()))
        self.assertFalse(is_transient_error(PlatformAPIError('bad', status_code=404)))
        self.assertFalse(is_transient_error(ValueError('bug')))
