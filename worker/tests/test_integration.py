import json
import re

from syncworker.integration import ensure_api_key, generate_embed_snippet, generate_script
from syncworker.models import Vendor


def _config_from(script: str) -> dict:
    match = re.search(r"config: (\{.*?\}),\n", script)
    assert match is not None
    return json.loads(match.group(1))


def test_script_embeds_vendor_config_and_push_endpoint():
    script = generate_script("vendor-shop", "https://sync.example.com/", "key-shop")

    assert "window.VENDOR_SYNC" in script
    assert '"/v1/vendors/" + encodeURIComponent(this.config.vendorId) + "/sync"' in script
    assert '"Bearer " + this.config.apiKey' in script
    assert "MutationObserver" in script
    assert _config_from(script) == {
        "apiBaseUrl": "https://sync.example.com",
        "vendorId": "vendor-shop",
        "apiKey": "key-shop",
        "autoSync": True,
        "syncInterval": 3600000,
        "debug": False,
    }


def test_script_keeps_javascript_regex_literals_intact():
    script = generate_script("vendor-shop", "https://sync.example.com", None)

    assert r"/,\d{1,2}$/.test(token)" in script
    assert r"/^-?[1-9]\d{0,2}(?:\.\d{3})+$/.test(token)" in script
    assert '.match(/-?\\d+(?:[.,]\\d+)*/)' in script
    assert _config_from(script)["apiKey"] is None


def test_values_cannot_break_out_of_the_script_tag():
    snippet = generate_embed_snippet('v</script><script>alert("x")', "https://sync.example.com", "k")

    assert "</script><script>alert" not in snippet
    assert snippet.count("</script>") == 1
    assert '<\\/script>' in snippet


def test_embed_snippet_points_at_vendor_script():
    snippet = generate_embed_snippet("vendor-shop", "https://sync.example.com/", "key-shop")

    assert 'script.src = "https://sync.example.com/v1/vendors/vendor-shop/sync-script.js";' in snippet
    assert "window.VENDOR_SYNC.init(config)" in snippet
    assert '"apiKey": "key-shop"' in snippet


def test_api_key_is_generated_once(session):
    vendor = session.get(Vendor, "vendor-nourl")
    assert vendor.api_key is None

    key = ensure_api_key(session, vendor)

    assert re.fullmatch(r"[0-9a-f]{32}", key)
    assert ensure_api_key(session, vendor) == key
    session.expire_all()
    assert session.get(Vendor, "vendor-nourl").api_key == key


def test_existing_api_key_is_kept(session):
    vendor = session.get(Vendor, "vendor-shop")

    assert ensure_api_key(session, vendor) == "key-shop"
