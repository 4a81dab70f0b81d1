from sitemanifest.robots import build_robots, render_robots


def test_points_crawlers_at_sitemap():
    text = render_robots("https://example.com")
    assert "Sitemap: https://example.com/sitemap.xml" in text.splitlines()


def test_trailing_slash_is_not_doubled():
    assert "Sitemap: https://example.com/sitemap.xml" in render_robots("https://example.com/")


def test_fixed_policy():
    lines = render_robots("https://example.com").splitlines()
    assert lines[:2] == ["User-agent: *", "Allow: /"]
    for path in ("/admin/", "/.well-known/", "/api/"):
        assert f"Disallow: {path}" in lines
    for path in ("/favicon.ico", "/robots.txt", "/sitemap.xml"):
        assert f"Allow: {path}" in lines
    assert "Crawl-delay: 1" in lines


def test_named_agents_are_granted_access():
    lines = render_robots("https://example.com").splitlines()
    for agent in ("Googlebot", "Bingbot", "Slurp"):
        index = lines.index(f"User-agent: {agent}")
        assert lines[index + 1] == "Allow: /"


def test_output_depends_only_on_base_url():
    assert render_robots("https://a.example") == render_robots("https://a.example")
    assert render_robots("https://a.example") != render_robots("https://b.example")


def test_artifact_headers():
    artifact = build_robots("https://example.com")
    assert artifact.path == "robots.txt"
    assert artifact.content_type == "text/plain"
    assert artifact.cache_control == "public, max-age=86400"
    assert artifact.body.decode("utf-8").endswith("Allow: /\n")
