from sitemanifest.render import Artifact, HeaderRule, header_rule, render_headers, strip_tags, write_artifact


def test_write_artifact_creates_parents(tmp_path):
    path = write_artifact(tmp_path, Artifact("og/2024/a.png", b"png", "image/png"))
    assert path == tmp_path / "og" / "2024" / "a.png"
    assert path.read_bytes() == b"png"


def test_render_headers():
    rules = [
        header_rule(Artifact("sitemap.xml", b"", "application/xml", "public, max-age=3600")),
        HeaderRule("/api/posts.json", "application/json"),
    ]
    assert render_headers(rules) == (
        "/sitemap.xml\n"
        "  Content-Type: application/xml\n"
        "  Cache-Control: public, max-age=3600\n"
        "\n"
        "/api/posts.json\n"
        "  Content-Type: application/json\n"
    )


def test_render_headers_empty():
    assert render_headers([]) == ""


def test_strip_tags():
    assert strip_tags("<p>Hello <b>there</b></p>") == "Hello there"
