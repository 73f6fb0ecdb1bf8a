"""Unit tests for the DigitalOcean client using respx to mock httpx."""

import json

import httpx
import pytest
import respx

from droplet_pool.config.models import ProviderConfig
from droplet_pool.provider.client import DigitalOceanClient
from droplet_pool.provider.errors import ErrorKind, ProviderError
from droplet_pool.provider.models import DropletCreateRequest

API_URL = "https://api.example.test/v2"


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(api_url=API_URL, per_page=50)


@pytest.fixture
def request_body() -> DropletCreateRequest:
    return DropletCreateRequest(
        name="worker-1",
        size="s-1vcpu-1gb",
        region="nyc1",
        image="ubuntu-24-04-x64",
        ssh_keys=[512],
    )


class TestCreateDroplet:
    @respx.mock
    def test_create_success(
        self, config: ProviderConfig, request_body: DropletCreateRequest
    ):
        route = respx.post(f"{API_URL}/droplets").mock(
            return_value=httpx.Response(
                202,
                json={
                    "droplet": {"id": 3164444, "name": "worker-1", "status": "new"},
                    "links": {"actions": []},
                },
            )
        )
        with DigitalOceanClient("tok", config) as client:
            droplet = client.create_droplet(request_body)

        assert route.called
        assert droplet.id == 3164444
        assert droplet.name == "worker-1"
        sent = json.loads(route.calls[0].request.read())
        assert sent == {
            "name": "worker-1",
            "size": "s-1vcpu-1gb",
            "region": "nyc1",
            "image": "ubuntu-24-04-x64",
            "ssh_keys": [512],
        }
        assert route.calls[0].request.headers["Authorization"] == "Bearer tok"

    @pytest.mark.parametrize(
        ("status", "message", "kind"),
        [
            (401, "Unable to authenticate you", ErrorKind.AUTH),
            (403, "You do not have access", ErrorKind.AUTH),
            (429, "API rate limit exceeded", ErrorKind.QUOTA),
            (422, "creating this droplet will exceed your droplet limit", ErrorKind.QUOTA),
            (422, "Region is not available", ErrorKind.VALIDATION),
            (404, "image not found", ErrorKind.VALIDATION),
            (500, "Server was unable to give you a response", ErrorKind.NETWORK),
            (503, "try again later", ErrorKind.NETWORK),
        ],
    )
    @respx.mock
    def test_create_error_classified(
        self,
        config: ProviderConfig,
        request_body: DropletCreateRequest,
        status: int,
        message: str,
        kind: ErrorKind,
    ):
        respx.post(f"{API_URL}/droplets").mock(
            return_value=httpx.Response(status, json={"id": "err", "message": message})
        )
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError) as excinfo:
                client.create_droplet(request_body)

        err = excinfo.value
        assert err.kind == kind
        assert err.status_code == status
        assert message in str(err)

    @respx.mock
    def test_server_error_on_create_not_retryable(
        self, config: ProviderConfig, request_body: DropletCreateRequest
    ):
        respx.post(f"{API_URL}/droplets").mock(
            return_value=httpx.Response(502, text="Bad Gateway")
        )
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError, match="Bad Gateway") as excinfo:
                client.create_droplet(request_body)
        assert excinfo.value.kind == ErrorKind.NETWORK
        assert excinfo.value.retryable is False

    @respx.mock
    def test_rate_limit_on_create_retryable(
        self, config: ProviderConfig, request_body: DropletCreateRequest
    ):
        respx.post(f"{API_URL}/droplets").mock(
            return_value=httpx.Response(429, json={"message": "slow down"})
        )
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError) as excinfo:
                client.create_droplet(request_body)
        assert excinfo.value.retryable is True

    @pytest.mark.parametrize(
        "exc", [httpx.ConnectError("refused"), httpx.ConnectTimeout("timed out")]
    )
    @respx.mock
    def test_connect_failure_on_create_retryable(
        self,
        config: ProviderConfig,
        request_body: DropletCreateRequest,
        exc: httpx.TransportError,
    ):
        respx.post(f"{API_URL}/droplets").mock(side_effect=exc)
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError, match=type(exc).__name__) as excinfo:
                client.create_droplet(request_body)
        assert excinfo.value.kind == ErrorKind.NETWORK
        assert excinfo.value.status_code is None
        assert excinfo.value.retryable is True

    @pytest.mark.parametrize(
        "exc",
        [
            httpx.ReadTimeout("timed out"),
            httpx.ReadError("connection reset"),
            httpx.RemoteProtocolError("server disconnected"),
        ],
    )
    @respx.mock
    def test_failure_after_send_on_create_not_retryable(
        self,
        config: ProviderConfig,
        request_body: DropletCreateRequest,
        exc: httpx.TransportError,
    ):
        respx.post(f"{API_URL}/droplets").mock(side_effect=exc)
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError) as excinfo:
                client.create_droplet(request_body)
        assert excinfo.value.kind == ErrorKind.NETWORK
        assert excinfo.value.retryable is False


class TestDeleteDroplet:
    @respx.mock
    def test_delete(self, config: ProviderConfig):
        route = respx.delete(f"{API_URL}/droplets/42").mock(
            return_value=httpx.Response(204)
        )
        with DigitalOceanClient("tok", config) as client:
            client.delete_droplet(42)
        assert route.called


class TestCatalogPages:
    @respx.mock
    def test_sizes_page(self, config: ProviderConfig):
        route = respx.get(f"{API_URL}/sizes").mock(
            return_value=httpx.Response(
                200,
                json={
                    "sizes": [
                        {
                            "slug": "s-1vcpu-1gb",
                            "memory": 1024,
                            "vcpus": 1,
                            "disk": 25,
                            "price_monthly": 6.0,
                            "available": True,
                            "regions": ["nyc1"],
                            "transfer": 1.0,
                        }
                    ],
                    "links": {"pages": {}},
                    "meta": {"total": 1},
                },
            )
        )
        with DigitalOceanClient("tok", config) as client:
            page = client.get_available_sizes(3)

        assert page.meta.total == 1
        assert [s.slug for s in page.entries] == ["s-1vcpu-1gb"]
        params = route.calls[0].request.url.params
        assert params["page"] == "3"
        assert params["per_page"] == "50"

    @respx.mock
    def test_images_page(self, config: ProviderConfig):
        respx.get(f"{API_URL}/images").mock(
            return_value=httpx.Response(
                200,
                json={
                    "images": [
                        {
                            "id": 7555620,
                            "name": "24.04 (LTS) x64",
                            "distribution": "Ubuntu",
                            "slug": "ubuntu-24-04-x64",
                        }
                    ],
                    "meta": {"total": 120},
                },
            )
        )
        with DigitalOceanClient("tok", config) as client:
            page = client.get_available_images(1)
        assert page.meta.total == 120
        assert page.entries[0].option_value == "7555620"
        assert page.entries[0].option_label == "Ubuntu 24.04 (LTS) x64"

    @respx.mock
    def test_regions_page(self, config: ProviderConfig):
        respx.get(f"{API_URL}/regions").mock(
            return_value=httpx.Response(
                200,
                json={
                    "regions": [{"slug": "nyc1", "name": "New York 1", "available": True}],
                    "meta": {"total": 1},
                },
            )
        )
        with DigitalOceanClient("tok", config) as client:
            page = client.get_available_regions(1)
        assert page.entries[0].option_value == "nyc1"
        assert page.entries[0].option_label == "New York 1"

    @respx.mock
    def test_read_timeout_on_listing_retryable(self, config: ProviderConfig):
        respx.get(f"{API_URL}/sizes").mock(side_effect=httpx.ReadTimeout("slow"))
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError) as excinfo:
                client.get_available_sizes(1)
        assert excinfo.value.retryable is True

    @respx.mock
    def test_server_error_on_listing_retryable(self, config: ProviderConfig):
        respx.get(f"{API_URL}/images").mock(
            return_value=httpx.Response(503, json={"message": "unavailable"})
        )
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError) as excinfo:
                client.get_available_images(1)
        assert excinfo.value.kind == ErrorKind.NETWORK
        assert excinfo.value.retryable is True

    @respx.mock
    def test_non_json_success_body(self, config: ProviderConfig):
        respx.get(f"{API_URL}/regions").mock(
            return_value=httpx.Response(200, text="<html>maintenance</html>")
        )
        with DigitalOceanClient("tok", config) as client:
            with pytest.raises(ProviderError, match="invalid JSON") as excinfo:
                client.get_available_regions(1)
        assert excinfo.value.kind == ErrorKind.UNKNOWN
        assert excinfo.value.status_code == 200
        assert excinfo.value.retryable is False

    @respx.mock
    def test_missing_meta_defaults_to_zero(self, config: ProviderConfig):
        respx.get(f"{API_URL}/regions").mock(
            return_value=httpx.Response(200, json={"regions": []})
        )
        with DigitalOceanClient("tok", config) as client:
            page = client.get_available_regions(1)
        assert page.meta.total == 0
        assert page.entries == []
