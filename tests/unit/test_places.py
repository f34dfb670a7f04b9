"""Tests for the Google Places client used to vet stores."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from stock_aid.exceptions import PlacesError, StoreVettingError
from stock_aid.places import PlacesClient, VettedPlace

SAFEWAY = {
    "place_id": "place-safeway",
    "name": "Safeway",
    "formatted_address": "570 N Shoreline Blvd, Mountain View, CA 94043, United States",
    "geometry": {"location": {"lat": 37.3995, "lng": -122.0814}},
}


@pytest.fixture
def mock_response():
    """Create a mock httpx response."""

    def _make_response(json_data, status_code=200):
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = json_data
        response.raise_for_status = MagicMock()
        if status_code >= 400:
            response.raise_for_status.side_effect = httpx.HTTPStatusError(
                "Error", request=MagicMock(), response=response
            )
        return response

    return _make_response


def _patched_client(MockClient, responses):
    mock_client = AsyncMock()
    mock_client.get.side_effect = responses
    mock_client.__aenter__.return_value = mock_client
    mock_client.__aexit__.return_value = None
    MockClient.return_value = mock_client
    return mock_client


class TestVetStore:
    """Test PlacesClient.vet_store."""

    async def test_single_grocery_store(self, mock_response):
        """One candidate with a grocery type is accepted and canonicalized."""
        responses = [
            mock_response({"status": "OK", "candidates": [SAFEWAY]}),
            mock_response({"status": "OK", "result": {"types": ["food", "supermarket", "store"]}}),
        ]
        with patch("httpx.AsyncClient") as MockClient:
            mock_client = _patched_client(MockClient, responses)
            place = await PlacesClient(api_key="k").vet_store("safeway", "shoreline mv")

        assert place == VettedPlace(
            place_id="place-safeway",
            name="Safeway",
            address="570 N Shoreline Blvd, Mountain View, CA 94043",
            lat=37.3995,
            lng=-122.0814,
        )

        find_call, details_call = mock_client.get.call_args_list
        assert find_call.args[0].endswith("/findplacefromtext/json")
        assert find_call.kwargs["params"]["input"] == "safeway shoreline mv"
        assert find_call.kwargs["params"]["key"] == "k"
        assert details_call.kwargs["params"]["place_id"] == "place-safeway"

    async def test_any_relevant_type_is_enough(self, mock_response):
        """The grocery type need not be listed first."""
        responses = [
            mock_response({"status": "OK", "candidates": [SAFEWAY]}),
            mock_response({"status": "OK", "result": {"types": ["point_of_interest", "pharmacy"]}}),
        ]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            place = await PlacesClient(api_key="k").vet_store("safeway", "mv")

        assert place.name == "Safeway"

    async def test_no_candidates(self, mock_response):
        responses = [mock_response({"status": "ZERO_RESULTS", "candidates": []})]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            with pytest.raises(StoreVettingError, match="found 0 store"):
                await PlacesClient(api_key="k").vet_store("nothing", "nowhere")

    async def test_several_candidates_listed(self, mock_response):
        other = dict(SAFEWAY, place_id="place-2", formatted_address="1 Other St, Town, CA 94000")
        responses = [mock_response({"status": "OK", "candidates": [SAFEWAY, other]})]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            with pytest.raises(StoreVettingError) as exc_info:
                await PlacesClient(api_key="k").vet_store("safeway", "ca")

        message = str(exc_info.value)
        assert "found 2 store(s)" in message
        assert "1: Safeway 570 N Shoreline Blvd" in message
        assert "2: Safeway 1 Other St" in message

    async def test_not_a_grocery_store(self, mock_response):
        responses = [
            mock_response({"status": "OK", "candidates": [SAFEWAY]}),
            mock_response({"status": "OK", "result": {"types": ["library", "point_of_interest"]}}),
        ]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            with pytest.raises(StoreVettingError, match="real grocery store"):
                await PlacesClient(api_key="k").vet_store("library", "mv")

    async def test_candidate_without_coordinates(self, mock_response):
        candidate = {k: v for k, v in SAFEWAY.items() if k != "geometry"}
        responses = [mock_response({"status": "OK", "candidates": [candidate]})]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            with pytest.raises(StoreVettingError, match="no coordinates"):
                await PlacesClient(api_key="k").vet_store("safeway", "mv")


class TestPlacesErrors:
    """Test transport and API errors."""

    async def test_missing_api_key(self):
        with patch("httpx.AsyncClient") as MockClient:
            with pytest.raises(PlacesError, match="API key"):
                await PlacesClient(api_key=None).find_place("safeway")
        MockClient.assert_not_called()

    async def test_http_error(self, mock_response):
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, [mock_response({}, status_code=500)])
            with pytest.raises(PlacesError, match="places request failed"):
                await PlacesClient(api_key="k").find_place("safeway")

    async def test_connection_error(self):
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, httpx.ConnectError("Connection refused"))
            with pytest.raises(PlacesError) as exc_info:
                await PlacesClient(api_key="k").find_place("safeway")

        assert not isinstance(exc_info.value, StoreVettingError)

    async def test_request_denied(self, mock_response):
        responses = [mock_response({"status": "REQUEST_DENIED", "error_message": "bad key"})]
        with patch("httpx.AsyncClient") as MockClient:
            _patched_client(MockClient, responses)
            with pytest.raises(PlacesError, match="REQUEST_DENIED: bad key"):
                await PlacesClient(api_key="k").find_place("safeway")

    def test_base_url_trailing_slash(self):
        client = PlacesClient(api_key="k", base_url="http://127.0.0.1:9010/maps/api/place/")
        assert client.base_url == "http://127.0.0.1:9010/maps/api/place"
