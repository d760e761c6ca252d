from catknow.config import ProxySettings, parse_args

def test_serve_args_become_proxy_settings(monkeypatch):
    monkeypatch.setenv("API_KEY", "live_abc")
    monkeypatch.setenv("RATE_LIMIT", "30")
    args = parse_args(["serve", "--cache-dir", "/tmp/catknow", "--port", "9000"])

    settings = ProxySettings.from_args(args)
    assert args.port == 9000
    assert settings.api_key == "live_abc"
    assert settings.rate_limit == 30
    assert settings.rate_window_ms == 60_000
    assert settings.cache_dir == "/tmp/catknow"
    assert settings.cache_ttl == 300
    assert settings.retries == 1
    assert settings.upstream_url == "https://api.thecatapi.com/v1"

def test_browse_defaults(monkeypatch):
    monkeypatch.delenv("CATKNOW_BASE_URL", raising=False)
    monkeypatch.delenv("PAGE_SIZE", raising=False)
    args = parse_args(["browse", "--category", "5"])
    assert args.command == "browse"
    assert args.category == "5"
    assert args.limit == 12
    assert args.pages == 3
    assert args.base_url == "http://localhost:8000"
