from concurrent.futures import ThreadPoolExecutor

import pytest

from imagor_url.core.config import Settings
from imagor_url.core.errors import ConfigurationError
from imagor_url.services.client import (
    BuilderRegistry,
    builder_registry,
    clear_imagor_client_instances,
    imagor_client,
)

from tests.helpers import IMAGE_URL, SECRET, SERVER, expected_signature


class TestBuilderRegistry:
    """Shared builder instances keyed by (server, secret)."""

    def test_same_configuration_same_instance(self):
        assert imagor_client(SERVER, SECRET) is imagor_client(SERVER, SECRET)

    def test_different_secret_different_instance(self):
        assert imagor_client(SERVER, "a") is not imagor_client(SERVER, "b")

    def test_different_server_different_instance(self):
        assert imagor_client(SERVER, SECRET) is not imagor_client("https://other.example.com", SECRET)

    def test_missing_server(self):
        with pytest.raises(ConfigurationError):
            imagor_client("", SECRET)
        with pytest.raises(ConfigurationError):
            imagor_client(None, SECRET)
        assert len(builder_registry) == 0

    def test_signed_client(self):
        url = imagor_client(SERVER, SECRET).dimensions(200, 200).src(IMAGE_URL).get_url()
        path = f"200x200/filters:format(jpeg):quality(70)/{IMAGE_URL}"
        assert url == f"{SERVER}/{expected_signature(path)}/{path}"

    def test_no_secret_uses_unsafe_mode(self):
        builder = imagor_client(SERVER)
        assert builder.config.unsafe

        first = builder.src(IMAGE_URL).get_url()
        second = builder.width(10).src(IMAGE_URL).get_url()

        assert first == f"{SERVER}/unsafe/filters:format(jpeg):quality(70)/{IMAGE_URL}"
        assert second == f"{SERVER}/unsafe/10x0/filters:format(jpeg):quality(70)/{IMAGE_URL}"

    def test_empty_secret_is_no_secret(self):
        assert imagor_client(SERVER, "") is imagor_client(SERVER, None)

    def test_clear(self):
        first = imagor_client(SERVER, SECRET)
        assert clear_imagor_client_instances() == 1
        assert len(builder_registry) == 0
        assert imagor_client(SERVER, SECRET) is not first

    def test_concurrent_lookups_create_one_instance(self):
        registry = BuilderRegistry()
        with ThreadPoolExecutor(max_workers=8) as executor:
            builders = list(executor.map(lambda _: registry.get(SERVER, SECRET), range(32)))

        assert len(registry) == 1
        assert all(builder is builders[0] for builder in builders)

    def test_from_settings(self):
        app_settings = Settings(
            imagor_server=SERVER,
            imagor_secret=SECRET,
            imagor_cache_ttl_seconds=30,
            imagor_default_filters="strip_exif():progressive()",
        )
        registry = BuilderRegistry()
        builder = registry.from_settings(app_settings)

        assert builder.config.secret == SECRET
        assert builder.config.cache_ttl_seconds == 30
        assert builder.filters == ["strip_exif()", "progressive()"]
        assert registry.from_settings(app_settings) is builder
