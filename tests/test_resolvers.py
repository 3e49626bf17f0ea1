# Copyright (c) Syntropy Systems
"""Tests for covariate resolution."""

from datetime import datetime, time, timedelta, timezone

from baseliner.declaration import build_declaration
from baseliner.models.covariate import NOT_SET, TextValue, TimeWindowValue
from baseliner.resolvers import (
    CustomResolver,
    ResolutionContext,
    ResolverRegistry,
    detect_system_timezone,
    env_var_name,
    resolve_profile,
)

DECLARATION = build_declaration(
    [
        {"kind": "day_of_week", "groups": [{"days": ["SAT", "SUN"]}]},
        {"kind": "time_of_day", "periods": ["08:00/4h", "18:00/4h"]},
        {"kind": "region", "groups": [{"regions": ["FR", "DE"], "label": "EU"}]},
        {"kind": "timezone"},
        {"kind": "custom", "key": "llm_model", "category": "CONFIGURATION"},
    ]
)


class TestLookupChain:
    """Tests for the three-tier custom value lookup."""

    def test_override_wins(self):
        """Test that explicit overrides beat environment and framework values."""
        context = ResolutionContext(
            now=datetime.now(timezone.utc),
            overrides={"llm_model": "gpt-a"},
            environ={"BASELINER_LLM_MODEL": "gpt-b"},
            framework_values={"llm_model": "gpt-c"},
        )

        assert context.lookup("llm_model") == "gpt-a"

    def test_environment_before_framework(self):
        """Test that the environment beats framework values."""
        context = ResolutionContext(
            now=datetime.now(timezone.utc),
            environ={"BASELINER_LLM_MODEL": "gpt-b"},
            framework_values={"llm_model": "gpt-c"},
        )

        assert context.lookup("llm_model") == "gpt-b"

    def test_blank_values_skipped(self):
        """Test that empty values fall through to the next tier."""
        context = ResolutionContext(
            now=datetime.now(timezone.utc),
            overrides={"llm_model": "  "},
            framework_values={"llm_model": "gpt-c"},
        )

        assert context.lookup("llm_model") == "gpt-c"

    def test_env_var_name(self):
        """Test environment variable naming for keys."""
        assert env_var_name("llm.model-name") == "BASELINER_LLM_MODEL_NAME"


class TestResolveProfile:
    """Tests for whole-profile resolution."""

    def test_weekend_afternoon_in_france(self, saturday_noon):
        """Test resolution of every covariate kind on a Saturday."""
        context = ResolutionContext(
            now=saturday_noon,
            system_timezone="UTC",
            overrides={"region": "fr", "llm_model": "gpt-4"},
        )

        profile = resolve_profile(DECLARATION, context)

        assert list(profile) == [
            "day_of_week",
            "time_of_day",
            "region",
            "timezone",
            "llm_model",
        ]
        assert profile["day_of_week"] == TextValue(value="WEEKEND")
        assert profile["time_of_day"] == TextValue(value="00:00/8h, 12:00/6h, 22:00/2h")
        assert profile["region"] == TextValue(value="EU")
        assert profile["timezone"] == TextValue(value="UTC")
        assert profile["llm_model"] == TextValue(value="gpt-4")

    def test_weekday_morning(self, tuesday_morning):
        """Test that a Tuesday morning hits WEEKDAY and the first period."""
        context = ResolutionContext(now=tuesday_morning, system_timezone="UTC")

        profile = resolve_profile(DECLARATION, context)

        assert profile["day_of_week"] == TextValue(value="WEEKDAY")
        assert profile["time_of_day"] == TextValue(value="08:00/4h")

    def test_system_timezone_shifts_day(self):
        """Test that the local day is computed in the system timezone."""
        # Friday 23:30 UTC is Saturday in Tokyo
        moment = datetime(2024, 6, 14, 23, 30, tzinfo=timezone.utc)
        context = ResolutionContext(now=moment, system_timezone="Asia/Tokyo")

        profile = resolve_profile(DECLARATION, context)

        assert profile["day_of_week"] == TextValue(value="WEEKEND")
        assert profile["timezone"] == TextValue(value="Asia/Tokyo")

    def test_run_start_preferred_over_now(self, saturday_noon, tuesday_morning):
        """Test that the run interval start drives partitioned covariates."""
        context = ResolutionContext(
            now=saturday_noon,
            run_start=tuesday_morning,
            run_end=tuesday_morning + timedelta(hours=1),
            system_timezone="UTC",
        )

        profile = resolve_profile(DECLARATION, context)

        assert profile["day_of_week"] == TextValue(value="WEEKDAY")

    def test_unresolvable_values_are_not_set(self, saturday_noon):
        """Test that missing region and custom values resolve to NOT_SET."""
        context = ResolutionContext(now=saturday_noon, system_timezone="UTC")

        profile = resolve_profile(DECLARATION, context)

        assert profile["region"] == NOT_SET
        assert profile["llm_model"] == NOT_SET

    def test_unlisted_region_is_other(self, saturday_noon):
        """Test that a region outside every group resolves to OTHER."""
        context = ResolutionContext(
            now=saturday_noon, system_timezone="UTC", overrides={"region": "US"}
        )

        profile = resolve_profile(DECLARATION, context)

        assert profile["region"] == TextValue(value="OTHER")

    def test_unknown_system_timezone_falls_back(self, saturday_noon):
        """Test that an invalid zone degrades to UTC instead of raising."""
        context = ResolutionContext(now=saturday_noon, system_timezone="Mars/Olympus")

        profile = resolve_profile(DECLARATION, context)

        assert profile["timezone"] == TextValue(value="UTC")


class TestTimeWindowResolution:
    """Tests for time of day without declared periods."""

    def test_run_interval_window(self):
        """Test that a run interval becomes a time window."""
        declaration = build_declaration([{"kind": "time_of_day"}])
        start = datetime(2024, 6, 11, 14, 30, 45, tzinfo=timezone.utc)
        context = ResolutionContext(
            now=start + timedelta(hours=2),
            run_start=start,
            run_end=start + timedelta(minutes=30),
            system_timezone="UTC",
        )

        value = resolve_profile(declaration, context)["time_of_day"]

        assert isinstance(value, TimeWindowValue)
        assert value.start == time(14, 30)
        assert value.end == time(15, 0)
        assert value.canonical() == "14:30-15:00 UTC"

    def test_point_window_without_interval(self, tuesday_morning):
        """Test that no run interval yields a single-point window."""
        declaration = build_declaration([{"kind": "time_of_day"}])
        context = ResolutionContext(now=tuesday_morning, system_timezone="UTC")

        value = resolve_profile(declaration, context)["time_of_day"]

        assert value.canonical() == "09:30-09:30 UTC"


class TestResolverRegistry:
    """Tests for the immutable resolver registry."""

    def test_with_resolver_returns_copy(self):
        """Test that binding a resolver leaves the original untouched."""
        registry = ResolverRegistry.for_declaration(DECLARATION)
        extended = registry.with_resolver("extra", CustomResolver("extra"))

        assert "extra" in extended
        assert "extra" not in registry

    def test_unknown_key_uses_custom_lookup(self, saturday_noon):
        """Test that unregistered keys fall back to the lookup chain."""
        registry = ResolverRegistry()
        context = ResolutionContext(
            now=saturday_noon, framework_values={"dataset": "v2"}
        )

        assert registry.resolver_for("dataset").resolve(context) == TextValue(value="v2")


class TestDetectSystemTimezone:
    """Tests for host timezone detection."""

    def test_tz_environment_variable(self):
        """Test that a valid TZ variable is used."""
        assert detect_system_timezone({"TZ": "Europe/Paris"}) == "Europe/Paris"

    def test_invalid_tz_is_ignored(self):
        """Test that an invalid TZ variable is not returned."""
        assert detect_system_timezone({"TZ": "Not/AZone"}) != "Not/AZone"
