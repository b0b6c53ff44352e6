"""Tests for score normalization and override resolution."""

import pytest

from conftest import make_lookup

from osu_scorecard.core.errors import OverrideValidationError
from osu_scorecard.core.models import (
    HitStatistics,
    Mod,
    OverrideSet,
    RawUserRecord,
    ScoringMode,
)
from osu_scorecard.core.normalizer import (
    GUEST_AVATAR_URL,
    PREVIEW_SLIDER_COUNT,
    detect_scoring_mode,
    normalize,
    normalize_preview,
    normalize_score,
    normalize_user,
    parse_accuracy,
    parse_count,
    parse_mods,
    parse_pp,
)


class TestParseMods:
    def test_drops_invalid_tokens_and_normalizes_case(self):
        assert parse_mods("HD, dt ,xx1") == [Mod(acronym="HD"), Mod(acronym="DT")]

    def test_empty_and_blank(self):
        assert parse_mods("") == []
        assert parse_mods("   ") == []
        assert parse_mods(None) == []

    def test_never_raises_on_garbage(self):
        assert parse_mods(",,H,HDD,1a, hr,") == [Mod(acronym="HR")]

    def test_order_preserved(self):
        assert [m.acronym for m in parse_mods("nc,hd,fl")] == ["NC", "HD", "FL"]


class TestParsers:
    def test_count_clamps_negative(self):
        assert parse_count("count_300", "-5") == 0

    def test_count_accepts_thousands_separators(self):
        assert parse_count("combo", "1,234") == 1234

    def test_count_rejects_text(self):
        with pytest.raises(OverrideValidationError):
            parse_count("count_300", "lots")

    def test_accuracy_is_percentage(self):
        assert parse_accuracy("accuracy", "98.5") == pytest.approx(0.985)
        assert parse_accuracy("accuracy", "150") == 1.0
        assert parse_accuracy("accuracy", "-3") == 0.0

    def test_infinite_numbers_rejected(self):
        for raw in ("inf", "-inf", "1e400"):
            with pytest.raises(OverrideValidationError):
                parse_pp("pp", raw)
            with pytest.raises(OverrideValidationError):
                parse_accuracy("accuracy", raw)


class TestScoringMode:
    def test_legacy_id_means_classic(self):
        assert detect_scoring_mode(make_lookup(legacy_score_id=123).score) == ScoringMode.CLASSIC

    def test_no_legacy_id_with_replay_is_modern(self):
        assert detect_scoring_mode(make_lookup(legacy_score_id=None, has_replay=True).score) == ScoringMode.MODERN

    def test_unknown_replay_flag_is_modern(self):
        assert detect_scoring_mode(make_lookup(legacy_score_id=None, has_replay=None).score) == ScoringMode.MODERN

    def test_replay_not_retained_is_classic(self):
        assert detect_scoring_mode(make_lookup(legacy_score_id=None, has_replay=False).score) == ScoringMode.CLASSIC

    def test_forced_mode_wins_over_detection(self, lookup):
        score = normalize_score(lookup, OverrideSet(scoring_mode=ScoringMode.MODERN))
        assert score.scoring_mode == ScoringMode.MODERN

    def test_last_forced_mode_selects_total(self, lookup):
        normalize_score(lookup, OverrideSet(scoring_mode=ScoringMode.CLASSIC))
        score = normalize_score(lookup, OverrideSet(scoring_mode=ScoringMode.MODERN))
        assert score.displayed_score == 1_012_345

        score = normalize_score(lookup, OverrideSet(scoring_mode=ScoringMode.CLASSIC))
        assert score.displayed_score == 987_654


class TestFieldResolution:
    def test_upstream_values_without_overrides(self, lookup):
        score = normalize_score(lookup, OverrideSet())
        assert score.scoring_mode == ScoringMode.CLASSIC
        assert score.displayed_score == 987_654
        assert (score.count_300, score.count_100, score.count_50, score.count_miss) == (500, 10, 0, 1)
        assert score.slider_ends == 410
        assert score.slider_count == 420
        assert score.rank == "S"
        assert score.pp_overridden is False

    def test_override_wins_when_parseable(self, lookup):
        score = normalize_score(lookup, OverrideSet(count_300="42", rank="sh", combo="1000", accuracy="99"))
        assert score.count_300 == 42
        assert score.rank == "SH"
        assert score.max_combo == 1000
        assert score.accuracy == pytest.approx(0.99)

    def test_unparseable_override_falls_back_to_upstream(self, lookup):
        score = normalize_score(lookup, OverrideSet(count_300="abc", rank="Z", accuracy="n/a"))
        assert score.count_300 == 500
        assert score.rank == "S"
        assert score.accuracy == pytest.approx(0.97)

    def test_blank_override_is_absent(self, lookup):
        score = normalize_score(lookup, OverrideSet(count_miss="   "))
        assert score.count_miss == 1

    def test_missing_upstream_uses_default(self):
        lookup = make_lookup(statistics=HitStatistics(), rank=None, max_combo=None, rank_global=None, mods=[])
        score = normalize_score(lookup, OverrideSet())
        assert score.count_300 == 0
        assert score.count_miss == 0
        assert score.rank == "F"
        assert score.max_combo == 0
        assert score.leaderboard == 0
        assert score.mods == []
        assert score.full_combo is False

    def test_score_override_replaces_displayed_total_only(self, lookup):
        score = normalize_score(lookup, OverrideSet(score="123456", scoring_mode=ScoringMode.MODERN))
        assert score.displayed_score == 123_456
        assert score.modern_total == 123_456
        assert score.classic_total == 987_654

    def test_score_override_is_capped(self, lookup):
        score = normalize_score(lookup, OverrideSet(score="5000000000"))
        assert score.displayed_score == 999_999_999

    def test_mods_override_replaces_upstream_list(self, lookup):
        score = normalize_score(lookup, OverrideSet(mods="hr"))
        assert [m.acronym for m in score.mods] == ["HR"]

    def test_upstream_mods_kept_without_override(self, lookup):
        score = normalize_score(lookup, OverrideSet(mods=""))
        assert [m.acronym for m in score.mods] == ["HD", "DT"]

    def test_pp_override_is_flagged(self, lookup):
        score = normalize_score(lookup, OverrideSet(pp="500.5"))
        assert score.pp == 500.5
        assert score.pp_overridden is True

    def test_infinite_pp_override_falls_back_to_upstream(self, lookup):
        score = normalize_score(lookup, OverrideSet(pp="inf", accuracy="1e400"))
        assert score.pp == 245.4
        assert score.pp_overridden is False
        assert score.accuracy == pytest.approx(0.97)

    def test_perfect_combo_comes_from_upstream(self):
        score = normalize_score(make_lookup(is_perfect_combo=True), OverrideSet())
        assert score.full_combo is True


class TestPreview:
    def test_defaults(self, preview):
        score = normalize_preview(preview, OverrideSet())
        assert score.scoring_mode == ScoringMode.CLASSIC
        assert score.displayed_score == 0
        assert score.count_300 == 0
        assert score.slider_count == PREVIEW_SLIDER_COUNT
        assert score.rank == "F"
        assert score.full_combo is False
        assert score.mods == []

    def test_overrides_apply(self, preview):
        score = normalize(preview, OverrideSet(score="727", count_300="300", mods="HD,HR", scoring_mode=ScoringMode.MODERN))
        assert score.displayed_score == 727
        assert score.modern_total == 727
        assert score.count_300 == 300
        assert [m.acronym for m in score.mods] == ["HD", "HR"]

    def test_full_combo_toggle_does_not_change_canonical_score(self, preview):
        assert normalize(preview, OverrideSet(full_combo=True)).full_combo is False


class TestUser:
    def test_score_backed_user(self, lookup):
        user = normalize_user(lookup, OverrideSet())
        assert user.username == "mrekk"
        assert user.user_rank == 1
        assert user.country == "AU"

    def test_username_override_truncated(self, lookup):
        user = normalize_user(lookup, OverrideSet(username="a_very_long_username_indeed"))
        assert user.username == "a_very_long_use"

    def test_invalid_avatar_override_ignored(self, lookup):
        user = normalize_user(lookup, OverrideSet(avatar_url="not a url"))
        assert user.avatar_url == "https://a.ppy.sh/7562902?1.jpeg"

    def test_valid_avatar_override_used(self, lookup):
        user = normalize_user(lookup, OverrideSet(avatar_url="https://example.com/me.PNG"))
        assert user.avatar_url == "https://example.com/me.PNG"

    def test_missing_rank_defaults_to_zero(self):
        user = normalize_user(make_lookup(user=RawUserRecord(username="x")), OverrideSet())
        assert user.user_rank == 0
        assert user.country == "xx"

    def test_preview_guest(self, preview):
        user = normalize_user(preview, OverrideSet())
        assert user.username == "Guest"
        assert user.user_rank == 0
        assert user.avatar_url == GUEST_AVATAR_URL
        assert user.country == "xx"

    def test_preview_overrides(self, preview):
        user = normalize_user(preview, OverrideSet(username="cookiezi", user_rank="-4"))
        assert user.username == "cookiezi"
        assert user.user_rank == 0
