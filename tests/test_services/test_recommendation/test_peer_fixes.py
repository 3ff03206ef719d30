"""Tests for peer dependency suggestions."""

from dephealth.models.issue import IssueType
from dephealth.schemas.scan import PackageManagerVariant
from dephealth.schemas.suggestion import ActionType, FixType, RiskLevel
from dephealth.services.recommendation.peers import (
    analyze_peer_conflict,
    analyze_peer_groups,
)
from tests.mocks.packages import make_issue

NPM = PackageManagerVariant.NPM


def _peer(current="16.14.0", expected="^17.0.0", name="react"):
    return make_issue(
        type=IssueType.PEER_CONFLICT,
        package_name=name,
        current_version=current,
        expected_version=expected,
    )


class TestAnalyzePeerConflict:
    def test_missing_peer(self):
        suggestions = analyze_peer_conflict(_peer(current=None), NPM)
        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.type == FixType.INSTALL_MISSING
        assert suggestion.risk == RiskLevel.MEDIUM
        assert suggestion.description == "Install missing peer dependency react"
        assert suggestion.actions[0].command == "npm install react@^17.0.0"

    def test_compatible_candidates_newest_first(self):
        suggestions = analyze_peer_conflict(_peer(), NPM)
        updates = [s for s in suggestions if s.description.startswith("Update react")]

        assert [s.actions[0].version for s in updates] == ["18.0.0", "17.0.0"]
        assert all(s.risk == RiskLevel.HIGH for s in updates)
        assert updates[1].estimated_impact.startswith(
            "Updates to version 17.0.0 - Major version increase (1 version)"
        )

        widen = suggestions[-1]
        assert widen.description == "Widen peer dependency range to >=16.14.0 <18.0.0 for react"
        assert widen.actions == []

    def test_satisfied_requirement_is_not_widened(self):
        suggestions = analyze_peer_conflict(_peer(current="17.0.2", expected="^17.0.0"), NPM)
        assert suggestions
        assert not any(s.description.startswith("Widen") for s in suggestions)

    def test_override_when_nothing_is_compatible(self):
        suggestions = analyze_peer_conflict(_peer(current="next", expected="canary"), NPM)

        assert [s.description for s in suggestions] == [
            "Use package manager resolution override for react",
            "Consider alternative packages that don't conflict with react",
        ]
        override = suggestions[0]
        assert override.risk == RiskLevel.HIGH
        assert override.actions[0].command == 'Add to package.json: "overrides": { "react": "canary" }'

    def test_override_uses_yarn_resolutions(self):
        suggestions = analyze_peer_conflict(
            _peer(current="next", expected="canary"), PackageManagerVariant.YARN
        )
        assert '"resolutions"' in suggestions[0].actions[0].command

    def test_no_requirement(self):
        assert analyze_peer_conflict(_peer(expected=None), NPM) == []


class TestAnalyzePeerGroups:
    def test_no_peer_issues(self):
        assert analyze_peer_groups([make_issue()], NPM) == []

    def test_unified_version(self):
        issues = [_peer(expected="^17.0.0"), _peer(expected="^17.2.0")]
        suggestions = analyze_peer_groups(issues, NPM)

        unified = suggestions[0]
        assert unified.description == (
            "Install unified peer dependency react@17.7.0 to resolve all conflicts"
        )
        assert unified.actions[0].type == ActionType.INSTALL
        assert unified.estimated_impact == "Resolves 2 peer dependency conflicts with single version"
        assert suggestions[-1].description == (
            "Consider using npm overrides to resolve peer dependency conflicts for react"
        )

    def test_incompatible_requirements_get_architectural_notes(self):
        issues = [_peer(expected="^16.0.0"), _peer(expected="^17.0.0")]
        descriptions = [s.description for s in analyze_peer_groups(issues, NPM)]

        assert descriptions == [
            "Consider using workspace/monorepo peer dependency hoisting for react",
            "Consider dependency injection pattern to avoid peer dependency conflicts with react",
            "Consider using npm overrides to resolve peer dependency conflicts for react",
        ]

    def test_exact_requirements_offer_the_newest(self):
        issues = [_peer(expected="16.14.0"), _peer(expected="17.0.2")]
        suggestions = analyze_peer_groups(issues, NPM)
        assert suggestions[0].description == (
            "Install latest required version react@17.0.2 (may require dependency updates)"
        )
        assert suggestions[0].risk == RiskLevel.HIGH

    def test_audit_for_many_conflicts(self):
        issues = [_peer(name=f"peer-{i}") for i in range(4)]
        suggestions = analyze_peer_groups(issues, PackageManagerVariant.PNPM)

        assert suggestions[0].description == "Consider peer dependency audit - 4 conflicts detected"
        assert suggestions[1].description == (
            "Consider using pnpm overrides to resolve peer dependency conflicts for "
            "peer-0, peer-1, peer-2, peer-3"
        )
