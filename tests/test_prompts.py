"""
test_prompts.py: prompt construction for generation, repair and review.
"""
import pytest

from factories import make_intake, make_plan_dict

from tas_builder.agents.prompts import (
    build_prompt,
    build_reflection_prompt,
    format_issues,
    load_system_prompt,
)
from tas_builder.agents.schemas import ValidationIssue
from tas_builder.errors import ConfigurationError


class TestBuildPrompt:
    def test_sparse_intake_carries_required_labels(self):
        prompt = build_prompt(make_intake())
        for label in ("QUALIFICATION", "Title:", "DURATION", "Weeks: 2",
                      "Total Hours: 16", "Hours per Week: 8.0",
                      "DELIVERY MODE", "COHORT PROFILE"):
            assert label in prompt

    def test_delivery_mode_is_humanised(self):
        assert "FACE TO FACE" in build_prompt(make_intake())

    def test_optional_sections_omitted_when_absent(self):
        prompt = build_prompt(make_intake())
        for label in ("START DATE", "VENUE", "UNIT LIST", "AVAILABLE RESOURCES",
                      "ASSESSMENT PREFERENCES", "PRIMARY TRAINER"):
            assert label not in prompt

    def test_optional_sections_included_when_present(self):
        intake = make_intake(
            start_date="2026-02-02",
            venue="Parramatta campus",
            unit_list="HLTAID009 Provide CPR",
            assessment_preferences=["practical", "observation"],
            resources={"facilities": ["Training room"], "equipment": ["Manikins"]},
            trainer_details={"primary_trainer": "Sam Lee", "additional_trainers": ["Alex Kim"]},
            class_size={"target": 12},
        )
        prompt = build_prompt(intake)
        assert "START DATE: 2026-02-02" in prompt
        assert "VENUE: Parramatta campus" in prompt
        assert "UNIT LIST\nHLTAID009 Provide CPR" in prompt
        assert "ASSESSMENT PREFERENCES: practical, observation" in prompt
        assert "Facilities: Training room" in prompt
        assert "PRIMARY TRAINER: Sam Lee" in prompt
        assert "ADDITIONAL TRAINERS: Alex Kim" in prompt
        assert "CLASS SIZE: Target 12" in prompt

    def test_no_repair_section_without_prior_error(self):
        assert "PREVIOUS GENERATION FAILED" not in build_prompt(make_intake())

    def test_repair_section_carries_prior_error(self):
        prompt = build_prompt(make_intake(), "meta.delivery_mode: Field required")
        assert "=== PREVIOUS GENERATION FAILED - PLEASE FIX ===" in prompt
        assert "meta.delivery_mode: Field required" in prompt
        assert prompt.index("PREVIOUS GENERATION FAILED") < prompt.index("END OF ISSUES")

    def test_ends_with_json_only_instruction(self):
        assert build_prompt(make_intake()).endswith(
            "Return ONLY the JSON response, no additional text or markdown."
        )


class TestReflectionPrompt:
    def test_includes_request_and_plan(self):
        prompt = build_reflection_prompt(make_intake(), make_plan_dict())
        assert "Certificate III in First Aid Response" in prompt
        assert "HLTAID009" in prompt
        assert 'say "No issues found."' in prompt

    def test_plan_json_is_truncated(self):
        plan = make_plan_dict(generation_notes="x" * 20000)
        assert len(build_reflection_prompt(make_intake(), plan)) < 8000


class TestFormatIssues:
    def _issues(self, n):
        return [ValidationIssue(path=f"units.{i}.unit_code", message="bad code") for i in range(n)]

    def test_empty(self):
        assert format_issues([]) == "No errors"

    def test_first_five_by_default(self):
        text = format_issues(self._issues(7))
        assert text.count("bad code") == 5
        assert text.endswith("(+2 more)")

    def test_no_limit_lists_everything(self):
        text = format_issues(self._issues(7), limit=None)
        assert text.count("bad code") == 7
        assert "more" not in text

    def test_joined_as_path_message(self):
        assert format_issues(self._issues(2)) == "units.0.unit_code: bad code; units.1.unit_code: bad code"


class TestSystemPrompt:
    def test_packaged_prompt_loads(self):
        assert "weekly_plan" in load_system_prompt()

    def test_missing_file_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_system_prompt(tmp_path / "nope.md")

    def test_empty_file_is_configuration_error(self, tmp_path):
        path = tmp_path / "empty.md"
        path.write_text("   \n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_system_prompt(path)
