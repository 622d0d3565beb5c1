import threading

import requests

COUNTRIES_URL = "https://countries.test/all"
RATES_URL = "https://rates.test/latest"


class FakeResp:
    def __init__(self, json_data, status=200):
        self._json = json_data
        self.status_code = status

    def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """
    Stands in for requests.Session. ``routes`` maps a URL to a list of
    outcomes served in order (the last one repeats); an outcome is a FakeResp
    or an exception instance to raise.
    """

    def __init__(self, routes):
        self.routes = {url: list(outcomes) for url, outcomes in routes.items()}
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None, headers=None):
        with self._lock:
            self.calls.append((url, timeout))
            outcomes = self.routes[url]
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def calls_to(self, url):
        return [call for call in self.calls if call[0] == url]

    def close(self):
        self.closed = True


def feed_session(countries, rates):
    return FakeSession({
        COUNTRIES_URL: [FakeResp(countries)],
        RATES_URL: [FakeResp(rates)],
    })
