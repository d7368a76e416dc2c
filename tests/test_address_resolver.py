"""
Tests for UPRN resolution against the address directories
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from services.binfinder.address_resolver import (
    PrivilegedAddressDirectory,
    PublicAddressDirectory,
    address_candidates_for_display,
    find_matching_candidate,
    is_usable_api_key,
    parse_directory_html,
    resolve_uprn,
    select_directory,
)
from services.binfinder.errors import UpstreamAuthError
from services.binfinder.models import AddressCandidate

GOOD_KEY = "k" * 32

DIRECTORY_HTML = """
<html><body>
  <h1>Addresses in SN8 1RA</h1>
  <ul>
    <li><a href="/100120992797">8 High Street, Marlborough, SN8 1RA</a></li>
    <li><a href="/100120992798">10 High Street, Marlborough, SN8 1RA</a></li>
    <li><a href="/uprn/100120992799">The Old Bakery, High Street, Marlborough, SN8 1RA</a></li>
    <li><a href="/about">About this site</a></li>
    <li><a href="/100120992798">10 High Street, Marlborough, SN8 1RA</a></li>
  </ul>
</body></html>
"""

OS_PLACES_JSON = {
    "header": {"totalresults": 2},
    "results": [
        {"DPA": {"UPRN": "100120992797", "ADDRESS": "8, HIGH STREET, MARLBOROUGH, SN8 1RA"}},
        {"DPA": {"UPRN": "100120992798", "ADDRESS": "10, HIGH STREET, MARLBOROUGH, SN8 1RA"}},
    ],
}


def _response(status_code=200, text="", json_data=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError("not json")
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


class TestMatching:
    candidates = [
        AddressCandidate("1", "10 High Street"),
        AddressCandidate("2", "1 High Street"),
        AddressCandidate("3", "The Old Bakery"),
    ]

    def test_case_insensitive_substring(self):
        assert find_matching_candidate(self.candidates, "old bakery").uprn == "3"

    def test_first_match_wins(self):
        # "1" is a substring of "10 High Street", which is listed first
        assert find_matching_candidate(self.candidates, "1").uprn == "1"

    def test_no_match(self):
        assert find_matching_candidate(self.candidates, "Rose Cottage") is None

    def test_blank_identifier_never_matches(self):
        assert find_matching_candidate(self.candidates, "  ") is None


class TestApiKeySelection:
    def test_usable_key(self):
        assert is_usable_api_key(GOOD_KEY) is True

    @pytest.mark.parametrize("key", [None, "", "   ", "short"])
    def test_unusable_key(self, key):
        assert is_usable_api_key(key) is False

    def test_select_directory(self):
        assert isinstance(select_directory(GOOD_KEY), PrivilegedAddressDirectory)
        assert isinstance(select_directory(None), PublicAddressDirectory)


class TestPublicDirectory:
    def test_parse_directory_html(self):
        candidates = parse_directory_html(DIRECTORY_HTML)
        assert [c.uprn for c in candidates] == ["100120992797", "100120992798", "100120992799"]
        assert candidates[2].display_address.startswith("The Old Bakery")

    @patch("services.binfinder.address_resolver.requests.get")
    def test_resolve_via_public_directory(self, mock_get):
        mock_get.return_value = _response(text=DIRECTORY_HTML)

        assert resolve_uprn("SN8 1RA", "10", None) == "100120992798"
        called_url = mock_get.call_args[0][0]
        assert called_url.endswith("SN81RA")

    @patch("services.binfinder.address_resolver.requests.get")
    def test_no_match_is_not_found(self, mock_get):
        mock_get.return_value = _response(text=DIRECTORY_HTML)
        assert resolve_uprn("SN8 1RA", "Rose Cottage", None) is None

    @patch("services.binfinder.address_resolver.requests.get")
    def test_network_error_is_not_found(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        assert resolve_uprn("SN8 1RA", "10", None) is None

    @patch("services.binfinder.address_resolver.requests.get")
    def test_server_error_is_not_found(self, mock_get):
        mock_get.return_value = _response(status_code=503)
        assert resolve_uprn("SN8 1RA", "10", None) is None

    @patch("services.binfinder.address_resolver.requests.get")
    def test_empty_directory_is_not_found(self, mock_get):
        mock_get.return_value = _response(text="<html><body>No addresses</body></html>")
        assert resolve_uprn("SN8 1RA", "10", None) is None


class TestPrivilegedDirectory:
    @patch("services.binfinder.address_resolver.requests.get")
    def test_resolve_with_api_key(self, mock_get):
        mock_get.return_value = _response(json_data=OS_PLACES_JSON)

        assert resolve_uprn("SN8 1RA", "10,", GOOD_KEY) == "100120992798"
        params = mock_get.call_args.kwargs["params"]
        assert params == {"postcode": "SN8 1RA", "key": GOOD_KEY}

    @patch("services.binfinder.address_resolver.requests.get")
    def test_rejected_key_is_distinct_from_not_found(self, mock_get):
        mock_get.return_value = _response(status_code=401, json_data={"error": "bad key"})

        with pytest.raises(UpstreamAuthError):
            resolve_uprn("SN8 1RA", "10", GOOD_KEY)

    @patch("services.binfinder.address_resolver.requests.get")
    def test_zero_results(self, mock_get):
        mock_get.return_value = _response(json_data={"header": {"totalresults": 0}})
        assert resolve_uprn("SN8 1RA", "10", GOOD_KEY) is None

    @patch("services.binfinder.address_resolver.requests.get")
    def test_non_json_body(self, mock_get):
        mock_get.return_value = _response(text="<html>maintenance</html>")
        assert resolve_uprn("SN8 1RA", "10", GOOD_KEY) is None

    @pytest.mark.parametrize(
        "body",
        [
            [],
            None,
            "results",
            {"results": ["bogus", 7, None]},
            {"results": {"DPA": {"UPRN": "100120992798"}}},
            {"results": [{"DPA": "10 HIGH STREET"}, {"LPI": ["100120992798"]}]},
        ],
    )
    @patch("services.binfinder.address_resolver.requests.get")
    def test_unexpected_json_shape_is_not_found(self, mock_get, body):
        resp = _response(json_data={})
        resp.json.return_value = body
        mock_get.return_value = resp

        assert resolve_uprn("SN8 1RA", "10", GOOD_KEY) is None
        assert address_candidates_for_display("SN8 1RA", GOOD_KEY) == [{"uprn": "", "address": "No addresses found"}]

    @patch("services.binfinder.address_resolver.requests.get")
    def test_junk_entries_are_skipped(self, mock_get):
        body = {"results": ["bogus", {"DPA": None}] + OS_PLACES_JSON["results"]}
        resp = _response(json_data={})
        resp.json.return_value = body
        mock_get.return_value = resp

        assert resolve_uprn("SN8 1RA", "10", GOOD_KEY) == "100120992798"


class TestAddressListing:
    @patch("services.binfinder.address_resolver.requests.get")
    def test_candidates_for_display(self, mock_get):
        mock_get.return_value = _response(json_data=OS_PLACES_JSON)

        addresses = address_candidates_for_display("SN8 1RA", GOOD_KEY)
        assert addresses == [
            {"uprn": "100120992797", "address": "8, HIGH STREET, MARLBOROUGH, SN8 1RA"},
            {"uprn": "100120992798", "address": "10, HIGH STREET, MARLBOROUGH, SN8 1RA"},
        ]

    @patch("services.binfinder.address_resolver.requests.get")
    def test_failure_returns_sentinel(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")

        addresses = address_candidates_for_display("SN8 1RA")
        assert len(addresses) == 1
        assert addresses[0]["uprn"] == ""
        assert addresses[0]["address"].startswith("Error")

    @patch("services.binfinder.address_resolver.requests.get")
    def test_rejected_key_sentinel(self, mock_get):
        mock_get.return_value = _response(status_code=401, json_data={})

        addresses = address_candidates_for_display("SN8 1RA", GOOD_KEY)
        assert addresses[0]["uprn"] == ""
        assert "rejected" in addresses[0]["address"]
