"""Tests for prompt rendering and strict row parsing."""

import pytest

from datagen_agent.generation.prompting import ParseFailure, build_generation_prompt, parse_dataset_rows
from datagen_agent.schemas import DatasetRequest


@pytest.fixture
def request_model():
    return DatasetRequest(
        topic="ecommerce products",
        description="Products sold in an online shop",
        columns=[{"name": "product_name", "datatype": "string"}, {"name": "price", "datatype": "currency"}],
        row_count=10,
    )


class TestBuildGenerationPrompt:
    """Tests for build_generation_prompt."""

    def test_core_sections(self, request_model):
        prompt = build_generation_prompt(request_model)

        assert prompt.startswith("You are a professional data generator.")
        assert "**Topic:** ecommerce products" in prompt
        assert "**Description:** Products sold in an online shop" in prompt
        assert "1. product_name (string)\n2. price (currency)" in prompt
        assert "**Number of Rows:** 10" in prompt
        assert "1. Generate EXACTLY 10 rows of realistic data" in prompt
        assert prompt.endswith("Generate the dataset now:")
        assert "Sample Data for Reference" not in prompt
        assert "REFERENCE CONTEXT" not in prompt

    def test_sample_data_limited_to_three_rows(self, request_model):
        request_model.sample_data = [{"product_name": f"p{i}", "price": i} for i in range(5)]
        prompt = build_generation_prompt(request_model)

        assert "**Sample Data for Reference:**" in prompt
        assert '"p2"' in prompt
        assert '"p3"' not in prompt

    def test_reference_block_before_instructions(self, request_model):
        request_model.sample_data = [{"product_name": "Lamp", "price": 10}]
        block = "\n\n--- REFERENCE CONTEXT (for structure understanding only) ---\n\nbody\n"
        prompt = build_generation_prompt(request_model, reference_block=block)

        sample_at = prompt.index("**Sample Data for Reference:**")
        block_at = prompt.index("--- REFERENCE CONTEXT")
        instructions_at = prompt.index("**Instructions:**")
        assert sample_at < block_at < instructions_at


class TestParseDatasetRows:
    """Tests for parse_dataset_rows."""

    def test_plain_array(self):
        assert parse_dataset_rows('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_code_fence(self):
        text = '```json\n[{"a": 1}]\n```'
        assert parse_dataset_rows(text) == [{"a": 1}]

    def test_prose_around_array(self):
        text = 'Here is your data:\n[{"note": "uses [brackets] and \\"quotes\\""}]\nEnjoy!'
        assert parse_dataset_rows(text) == [{"note": 'uses [brackets] and "quotes"'}]

    @pytest.mark.parametrize(
        ("text", "code"),
        [
            ("", "empty_output"),
            ("   ", "empty_output"),
            ("I cannot help with that.", "no_json_array"),
            ('[{"a": 1}', "no_json_array"),
            ("[{'a': 1}]", "json_decode_error"),
            ("[]", "empty_array"),
            ('[{"a": 1}, 2]', "row_not_object"),
        ],
    )
    def test_failures(self, text, code):
        with pytest.raises(ParseFailure) as exc_info:
            parse_dataset_rows(text)
        assert exc_info.value.code == code
        assert exc_info.value.stage == "generation"

    def test_failure_message_carries_stage_and_code(self):
        with pytest.raises(ParseFailure, match=r"\[retry:empty_array\]"):
            parse_dataset_rows("[]", stage="retry")


class TestDatasetRequest:
    """Tests for request validation rules."""

    def test_datatype_normalized(self):
        req = DatasetRequest(
            topic=" t ",
            description="d",
            columns=[{"name": " c ", "datatype": " Email "}],
            row_count=1,
        )
        assert req.topic == "t"
        assert req.columns[0].name == "c"
        assert req.columns[0].datatype == "email"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"topic": ""},
            {"topic": "x" * 201},
            {"description": "   "},
            {"columns": []},
            {"columns": [{"name": "c", "datatype": "blob"}]},
            {"columns": [{"name": " ", "datatype": "string"}]},
            {"row_count": 0},
            {"row_count": 1001},
        ],
    )
    def test_rejects(self, overrides):
        data = {
            "topic": "t",
            "description": "d",
            "columns": [{"name": "c", "datatype": "string"}],
            "row_count": 5,
        }
        data.update(overrides)
        with pytest.raises(ValueError):
            DatasetRequest.model_validate(data)
