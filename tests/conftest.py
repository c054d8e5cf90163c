import pytest

LOGIN_OK = """<?xml version="1.0" encoding="utf-8" ?>
<QRZDatabase version="1.34" xmlns="http://xmldata.qrz.com">
  <Session>
    <Key>2331uf894c4bd29f3923f3bacf02c532d7bd9</Key>
    <Count>123</Count>
    <SubExp>Wed Jan 1 12:34:03 2031</SubExp>
    <GMTime>Sun Aug 16 03:51:47 2026</GMTime>
  </Session>
</QRZDatabase>
"""

LOGIN_BAD = """<?xml version="1.0" encoding="utf-8" ?>
<QRZDatabase version="1.34" xmlns="http://xmldata.qrz.com">
  <Session>
    <Error>Username/password incorrect</Error>
    <GMTime>Sun Aug 16 03:51:47 2026</GMTime>
  </Session>
</QRZDatabase>
"""

LOOKUP_K1ABC = """<?xml version="1.0" encoding="utf-8" ?>
<QRZDatabase version="1.34" xmlns="http://xmldata.qrz.com">
  <Callsign>
    <call>K1ABC</call>
    <fname>Alice</fname>
    <name>Smith</name>
    <addr1>1 Main St</addr1>
    <addr2>Boston</addr2>
    <state>MA</state>
    <zip>02101</zip>
    <country>United States</country>
    <lat>42.358</lat>
    <lon>-71.060</lon>
    <grid>FN42li</grid>
    <email>k1abc@example.com</email>
    <class>E</class>
  </Callsign>
  <Session>
    <Key>2331uf894c4bd29f3923f3bacf02c532d7bd9</Key>
  </Session>
</QRZDatabase>
"""

LOOKUP_NOT_FOUND = """<?xml version="1.0" encoding="utf-8" ?>
<QRZDatabase version="1.34" xmlns="http://xmldata.qrz.com">
  <Session>
    <Error>Not found: ZZ9ZZZ</Error>
    <Key>2331uf894c4bd29f3923f3bacf02c532d7bd9</Key>
  </Session>
</QRZDatabase>
"""


class FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.content = text.encode("utf-8")
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests

            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stands in for requests.Session, serving queued XML bodies in order."""

    def __init__(self, *bodies: str):
        self.bodies = list(bodies)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, dict(params or {})))
        body = self.bodies.pop(0)
        if isinstance(body, FakeResponse):
            return body
        return FakeResponse(body)


@pytest.fixture
def fake_session():
    """Factory building a FakeSession from canned XML bodies."""
    return FakeSession


@pytest.fixture
def store(tmp_path):
    """A QSOStore with a fresh schema in a temporary file."""
    from qsodb.storage import QSOStore

    s = QSOStore(tmp_path / "test.sqlite3")
    s.create_schema()
    return s


@pytest.fixture
def sample_callsign():
    """Create a sample callsign lookup result for testing."""
    from qsodb.models import CallsignInfo

    return CallsignInfo(
        call="K1ABC",
        first_name="Alice",
        name="Smith",
        state="MA",
        country="United States",
        grid_square="FN42li",
        license_class="E",
    )
