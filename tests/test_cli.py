"""Tests for the command-line entry point."""

import json

from datagen_agent import cli

REQUEST = {
    "topic": "ecommerce products",
    "description": "Products sold in an online shop",
    "columns": [{"name": "product_name", "datatype": "string"}],
    "row_count": 2,
}


class FakeClient:
    def __init__(self, *, settings=None, api_key=None):
        self.settings = settings

    def __call__(self, prompt):
        return json.dumps([{"product_name": "Lamp"}, {"product_name": "Chair"}])


class TestCli:
    """Tests for cli.main."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_generate_list_show_delete(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(cli, "OpenAITextClient", FakeClient)
        db = str(tmp_path / "cli.db")
        request_path = tmp_path / "request.json"
        request_path.write_text(json.dumps(REQUEST), encoding="utf-8")
        output_path = tmp_path / "out" / "rows.json"

        code = cli.main(
            ["--db-path", db, "generate", "--input", str(request_path), "--output", str(output_path), "--no-reference"]
        )
        result = json.loads(capsys.readouterr().out)

        assert code == 0
        assert result["rows"] == 2
        assert result["reference_used"] is False
        assert json.loads(output_path.read_text(encoding="utf-8"))[1] == {"product_name": "Chair"}

        assert cli.main(["--db-path", db, "list-datasets"]) == 0
        listing = json.loads(capsys.readouterr().out)
        assert listing["total"] == 1

        assert cli.main(["--db-path", db, "show-dataset", result["dataset_id"]]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["generated_rows"][0] == {"product_name": "Lamp"}

        assert cli.main(["--db-path", db, "delete-dataset", result["dataset_id"]]) == 0
        capsys.readouterr()
        assert cli.main(["--db-path", db, "show-dataset", result["dataset_id"]]) == 1

    def test_generate_validation_error(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(cli, "OpenAITextClient", FakeClient)
        request_path = tmp_path / "request.json"
        request_path.write_text(json.dumps(dict(REQUEST, row_count=0)), encoding="utf-8")

        code = cli.main(
            ["--db-path", str(tmp_path / "cli.db"), "generate", "--input", str(request_path), "--no-reference"]
        )

        assert code == 2
        assert '"validation_error"' in capsys.readouterr().err
