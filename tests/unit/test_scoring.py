"""Unit tests for sustainability scoring logic"""

import pytest
from dataclasses import replace
from support_oss.domain.models import Category, DEFAULT_WEIGHTS, ScoringFactor, ScoringInputs, ScoringWeights
from support_oss.domain.scoring import (
    MAINTAINER_STATUS_SCORES,
    build_explanation,
    calculate_score,
    determine_category,
    normalize_balance,
    normalize_dependents,
    normalize_downloads,
    round_half_up,
)
from support_oss.domain.exceptions import InvalidScoringInputError


def factor_names(result):
    return [f.name for f in result.factors]


def test_empty_inputs_score_neutral_base():
    """Test that no signals at all yields the neutral 50"""
    result = calculate_score(ScoringInputs())

    assert result.score == 50
    assert result.category == Category.NEEDS_SUPPORT
    assert result.factors == []
    assert result.explanation == []


@pytest.mark.parametrize("status", list(Category))
def test_maintainer_status_overrides_everything(status: Category):
    """Test self-reported status wins over every other signal"""
    inputs = ScoringInputs(
        weekly_downloads=50_000_000,
        dependent_count=20_000,
        oc_balance=500_000,
        corporate_backing="Google",
        maintainer_count=1,
        days_since_last_publish=2000,
        ai_disruption_flag=True,
        maintainer_status=status,
    )

    result = calculate_score(inputs)

    assert result.score == MAINTAINER_STATUS_SCORES[status]
    assert result.category == status
    assert result.explanation == ["Score based on maintainer self-reported status"]
    assert result.factors == [
        ScoringFactor(name="Maintainer Status", impact=0, reason=f'Maintainer marked as "{status.value}"')
    ]


def test_maintainer_status_accepts_string():
    """Test stored string statuses are converted to categories"""
    result = calculate_score(ScoringInputs(maintainer_status="thriving"))

    assert result.score == 85
    assert result.category == Category.THRIVING


def test_unknown_maintainer_status_rejected():
    """Test malformed maintainer status raises"""
    with pytest.raises(InvalidScoringInputError):
        ScoringInputs(maintainer_status="abandoned")


def test_corporate_backing_short_circuits():
    """Test corporate backing gives 95/corporate regardless of risk signals"""
    inputs = ScoringInputs(
        corporate_backing="Vercel",
        maintainer_count=1,
        days_since_last_publish=3000,
        ai_disruption_flag=True,
    )

    result = calculate_score(inputs)

    assert result.score == 95
    assert result.category == Category.CORPORATE
    assert result.explanation == ["Backed by Vercel - does not need community funding"]
    assert len(result.factors) == 1
    assert result.factors[0].name == "Corporate Backing"
    assert result.factors[0].impact == DEFAULT_WEIGHTS.corporate_backing
    assert result.factors[0].reason == "Maintained by Vercel"


def test_empty_corporate_backing_is_ignored():
    """Test an empty company name does not count as backing"""
    result = calculate_score(ScoringInputs(corporate_backing=""))

    assert result.score == 50


def test_oc_balance_increases_score_until_cap():
    """Test balance is monotonic up to $100k and flat beyond"""
    scores = [calculate_score(ScoringInputs(oc_balance=b)).score for b in (0, 10_000, 50_000, 100_000, 200_000)]

    assert scores == [50, 52, 60, 70, 70]


def test_oc_balance_factor_reason():
    """Test balance factor records the amount"""
    result = calculate_score(ScoringInputs(oc_balance=12_345))

    assert result.factors[0].name == "OC Balance"
    assert result.factors[0].reason == "$12,345 in OpenCollective"


def test_oc_income_factor():
    """Test yearly income adds up to the income weight"""
    result = calculate_score(ScoringInputs(oc_yearly_income=50_000))

    assert result.score == 58  # 50 + 0.5 * 15 = 57.5, rounded half up
    assert result.factors[0].reason == "$50,000/year from OpenCollective"


def test_github_sponsors_bonus():
    """Test GitHub Sponsors adds its full weight"""
    result = calculate_score(ScoringInputs(github_sponsors_enabled=True))

    assert result.score == 55
    assert factor_names(result) == ["GitHub Sponsors"]


def test_solo_maintainer_lower_than_team():
    """Test bus factor: one maintainer scores below three"""
    solo = calculate_score(ScoringInputs(maintainer_count=1))
    team = calculate_score(ScoringInputs(maintainer_count=3))

    assert solo.score < team.score
    assert solo.score == 48  # 50 - 2.5 = 47.5
    assert team.score == 53  # 50 + 2.5 = 52.5
    assert factor_names(solo) == ["Solo Maintainer"]
    assert factor_names(team) == ["Maintainer Count"]


def test_maintainer_bonus_caps_at_five():
    """Test five and ten maintainers score identically"""
    five = calculate_score(ScoringInputs(maintainer_count=5))
    ten = calculate_score(ScoringInputs(maintainer_count=10))

    assert five.score == ten.score == 55


@pytest.mark.parametrize("count", [None, 0])
def test_missing_maintainer_count_is_neutral(count):
    """Test absent or zero maintainer count adds no factor"""
    result = calculate_score(ScoringInputs(maintainer_count=count))

    assert result.score == 50
    assert result.factors == []


@pytest.mark.parametrize("days", [0, 100, 365])
def test_no_inactivity_within_a_year(days: int):
    """Test releases within a year carry no penalty"""
    result = calculate_score(ScoringInputs(days_since_last_publish=days))

    assert "Inactivity" not in factor_names(result)


def test_inactivity_penalty_grows_until_cap():
    """Test the penalty increases with age and saturates at three years"""

    def penalty(days):
        result = calculate_score(ScoringInputs(days_since_last_publish=days))
        return -next(f.impact for f in result.factors if f.name == "Inactivity")

    assert 0 < penalty(366) < penalty(500) < penalty(730) < penalty(1095)
    assert penalty(1095) == penalty(2000) == DEFAULT_WEIGHTS.activity_penalty


def test_inactivity_reason_uses_whole_years():
    """Test reason counts completed years"""
    result = calculate_score(ScoringInputs(days_since_last_publish=730))

    assert result.score == 45
    assert result.factors[0].reason == "No releases in 2 years"


def test_ai_disruption_penalty():
    """Test AI disruption subtracts its full weight"""
    result = calculate_score(ScoringInputs(ai_disruption_flag=True))

    assert result.score == 35
    assert result.category == Category.NEEDS_SUPPORT
    assert result.factors[0].reason == "Business model at risk from AI tools"


def test_downloads_are_informational_but_drive_importance_penalty():
    """Test popular unfunded packages are pulled towards critical"""
    result = calculate_score(ScoringInputs(weekly_downloads=1_000_000))

    # importance = (log10(1M + 1) / 9) * 0.6 = 0.4 -> penalty 6
    assert result.score == 44
    assert factor_names(result) == ["Weekly Downloads", "High Impact, Low Funding"]
    assert result.factors[0].reason == "1,000,000 weekly downloads"
    assert result.factors[0].impact == pytest.approx(-normalize_downloads(1_000_000) * 10)
    assert result.factors[1].impact == pytest.approx(-6.0)


def test_importance_penalty_skipped_for_funded_packages():
    """Test no importance penalty once the score reaches 60"""
    result = calculate_score(
        ScoringInputs(weekly_downloads=30_000_000, dependent_count=30_000, oc_balance=100_000)
    )

    assert result.score == 70
    assert "High Impact, Low Funding" not in factor_names(result)


def test_small_packages_skip_importance_penalty():
    """Test importance below threshold leaves the score alone"""
    result = calculate_score(ScoringInputs(weekly_downloads=1_000, dependent_count=5))

    assert result.score == 50
    assert factor_names(result) == ["Weekly Downloads", "Dependent Packages"]


def test_critical_package_profile():
    """Test a popular abandoned solo project lands in critical"""
    result = calculate_score(
        ScoringInputs(
            weekly_downloads=40_000_000,
            dependent_count=50_000,
            maintainer_count=1,
            days_since_last_publish=1500,
        )
    )

    assert result.category == Category.CRITICAL
    assert result.score == 24  # 50 - 2.5 - 10 - 13.6
    assert result.explanation == [
        "50,000 packages depend on this",
        "Critical infrastructure without adequate funding",
        "No releases in 4 years",
    ]


def test_score_is_clamped():
    """Test scores never leave 0-100"""
    low = calculate_score(ScoringInputs(ai_disruption_flag=True), replace(DEFAULT_WEIGHTS, ai_disruption=100))
    high = calculate_score(ScoringInputs(github_sponsors_enabled=True), replace(DEFAULT_WEIGHTS, github_sponsors=100))

    assert low.score == 0
    assert low.category == Category.CRITICAL
    assert high.score == 100
    assert high.category == Category.CORPORATE


def test_explanation_has_at_most_three_reasons():
    """Test explanation is the top three factors by absolute impact"""
    result = calculate_score(
        ScoringInputs(
            oc_balance=5_000,  # +1
            oc_yearly_income=100_000,  # +15
            github_sponsors_enabled=True,  # +5
            maintainer_count=1,  # -2.5
            ai_disruption_flag=True,  # -15
        )
    )

    assert len(result.factors) == 5
    assert result.explanation == [
        "$100,000/year from OpenCollective",
        "Business model at risk from AI tools",
        "Has GitHub Sponsors enabled",
    ]
    # factors keep evaluation order
    assert factor_names(result) == ["OC Balance", "OC Income", "GitHub Sponsors", "Solo Maintainer", "AI Disruption"]


def test_build_explanation_ties_keep_order():
    """Test equal impacts keep their original order"""
    factors = [
        ScoringFactor(name="a", impact=5, reason="first"),
        ScoringFactor(name="b", impact=-5, reason="second"),
        ScoringFactor(name="c", impact=1, reason="third"),
        ScoringFactor(name="d", impact=5, reason="fourth"),
    ]

    assert build_explanation(factors) == ["first", "second", "fourth"]
    assert [f.name for f in factors] == ["a", "b", "c", "d"]


def test_custom_weights_replace_defaults():
    """Test a caller-supplied weight set changes the result"""
    weights = replace(DEFAULT_WEIGHTS, ai_disruption=40)

    assert calculate_score(ScoringInputs(ai_disruption_flag=True), weights).score == 10
    assert calculate_score(ScoringInputs(ai_disruption_flag=True)).score == 35


def test_weights_from_mapping_requires_every_name():
    """Test partial weight overrides are rejected"""
    with pytest.raises(InvalidScoringInputError):
        ScoringWeights.from_mapping({"downloads": 5})

    values = {
        "downloads": 1,
        "dependents": 2,
        "oc_balance": 3,
        "oc_income": 4,
        "github_sponsors": 5,
        "corporate_backing": 6,
        "maintainer_count": 7,
        "activity_penalty": 8,
        "ai_disruption": 9,
    }
    weights = ScoringWeights.from_mapping(values)
    assert weights.ai_disruption == 9
    assert weights.downloads == 1


def test_negative_weights_rejected():
    """Test weights must be non-negative"""
    with pytest.raises(InvalidScoringInputError):
        ScoringWeights(oc_balance=-1)


@pytest.mark.parametrize(
    "field_name",
    ["weekly_downloads", "dependent_count", "oc_balance", "oc_yearly_income", "maintainer_count", "days_since_last_publish"],
)
def test_negative_inputs_rejected(field_name: str):
    """Test negative counts and amounts raise"""
    with pytest.raises(InvalidScoringInputError):
        ScoringInputs(**{field_name: -1})


def test_score_bounds_over_many_inputs():
    """Test the score is always an int within 0-100"""
    for downloads in (None, 0, 10, 1_000_000, 10**9):
        for balance in (None, 0, 5_000, 10**6):
            for maintainers in (None, 1, 2, 20):
                for days in (None, 10, 400, 5000):
                    for flag in (False, True):
                        result = calculate_score(
                            ScoringInputs(
                                weekly_downloads=downloads,
                                dependent_count=downloads,
                                oc_balance=balance,
                                maintainer_count=maintainers,
                                days_since_last_publish=days,
                                ai_disruption_flag=flag,
                            )
                        )
                        assert isinstance(result.score, int)
                        assert 0 <= result.score <= 100
                        assert len(result.explanation) <= min(3, len(result.factors))


@pytest.mark.parametrize(
    "score,expected",
    [
        (0, Category.CRITICAL),
        (30, Category.CRITICAL),
        (31, Category.NEEDS_SUPPORT),
        (50, Category.NEEDS_SUPPORT),
        (51, Category.STABLE),
        (75, Category.STABLE),
        (76, Category.THRIVING),
        (90, Category.THRIVING),
        (91, Category.CORPORATE),
        (100, Category.CORPORATE),
    ],
)
def test_determine_category_boundaries(score: int, expected: Category):
    """Test category bands are inclusive at their upper bound"""
    assert determine_category(score) == expected


def test_normalizers():
    """Test normalization curves and caps"""
    assert normalize_downloads(None) == 0.0
    assert normalize_downloads(10**12) == 1.0
    assert normalize_dependents(0) == 0.0
    assert normalize_dependents(99) == pytest.approx(0.5)
    assert normalize_dependents(100_000) == 1.0
    assert normalize_balance(50_000) == 0.5
    assert normalize_balance(1_000_000) == 1.0


def test_round_half_up():
    """Test ties round up rather than to even"""
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(47.5) == 48
    assert round_half_up(2.4) == 2
    assert round_half_up(0.125, 2) == 0.13


def test_round_half_up_large_values():
    """Test values beyond float precision come back unchanged"""
    assert round_half_up(1e307, 2) == 1e307
    assert round_half_up(2.0**60, 1) == 2.0**60
    assert round_half_up(-1e307, 2) == -1e307
    assert round_half_up(1234.5) == 1235
