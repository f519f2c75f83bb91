from pathlib import Path

from ledgerbuild.cache import BuildCache
from ledgerbuild.pages.templates import plan_templates, stage_templates, template_key


def test_template_key_flattens_directories() -> None:
    assert template_key("reports/monthly.html", frozenset()) == "reports.monthly"
    assert template_key("a/b/c.html", frozenset()) == "a.b.c"
    assert template_key("footer.html", frozenset()) == "footer"


def test_root_level_collision_with_page_gets_suffix() -> None:
    assert template_key("home.html", frozenset({"home"})) == "home.template"
    # Nested files cannot collide with a page artifact.
    assert template_key("reports/home.html", frozenset({"home"})) == "reports.home"


def test_plan_skips_page_markup_and_non_html(project: Path) -> None:
    pages_root = project / "src" / "client" / "pages"
    (pages_root / "home.html").write_text("<p>collides</p>\n")
    plans = plan_templates(pages_root, ["dashboard", "home"])
    assert [plan.key for plan in plans] == ["home.template", "reports.monthly"]
    assert plans[1].relative == "reports/monthly.html"


def test_stage_copies_and_records(make_config) -> None:
    config = make_config()
    cache = BuildCache(config.cache_file)
    plans = plan_templates(config.pages_root, ["dashboard", "home"])

    report = stage_templates(plans, config, cache)

    assert report.copied == ["reports.monthly"]
    target = config.out_dir / "reports.monthly.html"
    assert target.read_text() == "<p>monthly report</p>\n"
    assert cache.digest("templates", "reports.monthly")


def test_stage_with_only_changed_skips_unchanged(make_config) -> None:
    config = make_config(only_changed=True)
    cache = BuildCache(config.cache_file)
    plans = plan_templates(config.pages_root, [])

    assert stage_templates(plans, config, cache).copied == ["reports.monthly"]
    second = stage_templates(plans, config, cache)
    assert second.copied == []
    assert second.skipped == ["reports.monthly"]

    (config.pages_root / "reports" / "monthly.html").write_text("<p>v2</p>\n")
    assert stage_templates(plans, config, cache).copied == ["reports.monthly"]


def test_stage_failure_is_reported_not_raised(make_config) -> None:
    config = make_config()
    cache = BuildCache(config.cache_file)
    plans = plan_templates(config.pages_root, [])
    (config.pages_root / "reports" / "monthly.html").write_bytes(b"\xff\xfe\x00bad")

    report = stage_templates(plans, config, cache)

    assert report.failed == ["reports.monthly"]
    assert report.copied == []
    assert cache.digest("templates", "reports.monthly") is None
