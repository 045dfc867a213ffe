"""Unit tests for the pair sources."""

import json
import random

import pytest

from synapse_compare.pipeline.sources import (
    CsvPairSource,
    ExternalLogSource,
    ParameterUrlBuilder,
    SourceError,
    SynthesizedPairSource,
    parse_console_log,
    swap_base_url,
)


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestCsvPairSource:
    def test_rows_keep_their_input_position(self, tmp_path):
        path = _write(
            tmp_path,
            "pairs.csv",
            "url1,url2\nhttp://a/1,http://b/1\n,http://b/2\nhttp://a/3, http://b/3 \n",
        )

        requests = list(CsvPairSource(path))

        assert [r.index for r in requests] == [1, 2, 3]
        assert requests[0].is_complete
        assert requests[1].url1 is None and not requests[1].is_complete
        assert requests[2].url2 == "http://b/3"

    def test_custom_column_names(self, tmp_path):
        path = _write(tmp_path, "pairs.csv", "id,prod,stage\n1,http://p/x,http://s/x\n")

        (request,) = CsvPairSource(path, column1="prod", column2="stage")

        assert (request.url1, request.url2) == ("http://p/x", "http://s/x")

    def test_byte_order_mark_is_ignored(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffurl1,url2\nhttp://a,http://b\n".encode("utf-8"))

        (request,) = CsvPairSource(path)

        assert request.url1 == "http://a"

    def test_missing_column_raises(self, tmp_path):
        path = _write(tmp_path, "pairs.csv", "left,right\nhttp://a,http://b\n")

        with pytest.raises(SourceError, match="url1, url2"):
            list(CsvPairSource(path))

    def test_header_only_file_raises(self, tmp_path):
        path = _write(tmp_path, "pairs.csv", "url1,url2\n")

        with pytest.raises(SourceError, match="No data"):
            list(CsvPairSource(path))

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(SourceError, match="Cannot read"):
            list(CsvPairSource(tmp_path / "absent.csv"))


def _external(iteration, status1=200, status2=200, **extra):
    record = {
        "type": "comparison",
        "iteration": iteration,
        "url1": f"http://a/{iteration}",
        "url2": f"http://b/{iteration}",
        "url1Status": status1,
        "url2Status": status2,
        "responseTime": 40 + iteration,
    }
    record.update(extra)
    return record


class TestExternalLogSource:
    def test_only_2xx_pairs_are_eligible(self):
        source = ExternalLogSource([_external(1), _external(2, status2=500), _external(3, 0, 200)])

        requests = list(source)

        assert [r.eligible for r in requests] == [True, False, False]
        assert requests[1].external["url2Status"] == 500

    def test_results_json_is_loaded(self, tmp_path):
        path = _write(tmp_path, "comparison-results.json", json.dumps([_external(1), _external(2)]))

        source = ExternalLogSource.from_results_json(path)

        assert [r.url1 for r in source] == ["http://a/1", "http://a/2"]
        assert source.origin == str(path)

    def test_results_json_must_be_an_array(self, tmp_path):
        path = _write(tmp_path, "results.json", json.dumps({"records": []}))

        with pytest.raises(SourceError, match="JSON array"):
            ExternalLogSource.from_results_json(path)

    def test_invalid_results_json_raises(self, tmp_path):
        path = _write(tmp_path, "results.json", "[{")

        with pytest.raises(SourceError, match="not valid JSON"):
            ExternalLogSource.from_results_json(path)

    def test_empty_record_list_raises_on_iteration(self):
        with pytest.raises(SourceError, match="No comparison records"):
            list(ExternalLogSource([], origin="run.log"))

    def test_console_log_file(self, tmp_path):
        lines = [
            "running 10 iterations",
            "INFO " + json.dumps(_external(1), separators=(",", ":")) + " trailing",
            "noise",
        ]
        path = _write(tmp_path, "console.log", "\n".join(lines))

        source = ExternalLogSource.from_console_log(path)

        assert len(source.records) == 1
        assert source.records[0]["iteration"] == 1


class TestParseConsoleLog:
    def test_extracts_embedded_objects_and_skips_broken_lines(self):
        good = json.dumps(_external(7), separators=(",", ":"))
        text = "\n".join(
            [
                f"[vu 3] {good}",
                '{"type":"comparison","iteration": 8, "url1"',
                '{"type":"metric","value":1}',
                good,
            ]
        )

        records = parse_console_log(text)

        assert [r["iteration"] for r in records] == [7, 7]

    def test_no_markers_gives_no_records(self):
        assert parse_console_log("plain output\nnothing here") == []


class TestUrlSynthesis:
    def test_swap_replaces_prefix(self):
        url = swap_base_url(
            "https://prod.example.com/img?id=1",
            "https://prod.example.com",
            "https://stage.example.com",
        )
        assert url == "https://stage.example.com/img?id=1"

    def test_swap_falls_back_to_first_occurrence(self):
        assert swap_base_url("x-http://p/y", "http://p", "http://s") == "x-http://s/y"

    def test_builder_without_parameters_returns_base(self):
        assert ParameterUrlBuilder("http://p/img")(0) == "http://p/img"

    def test_builder_generates_each_parameter_kind(self):
        params = [
            {"name": "mode", "type": "static", "value": "a b"},
            {"name": "w", "type": "integer", "min": 5, "max": 5},
            {"name": "code", "type": "string", "length": 6, "charset": "numeric"},
            {"name": "fmt", "type": "array", "values": ["png"]},
        ]

        url = ParameterUrlBuilder("http://p/img", params, rng=random.Random(1))(0)

        base, query = url.split("?")
        fields = dict(part.split("=") for part in query.split("&"))
        assert base == "http://p/img"
        assert fields["mode"] == "a%20b"
        assert fields["w"] == "5"
        assert len(fields["code"]) == 6 and fields["code"].isdigit()
        assert fields["fmt"] == "png"

    def test_seeded_builders_agree(self):
        params = [{"name": "q", "type": "string", "length": 12}]

        first = ParameterUrlBuilder("http://p", params, rng=random.Random(42))
        second = ParameterUrlBuilder("http://p", params, rng=random.Random(42))

        assert [first(i) for i in range(3)] == [second(i) for i in range(3)]

    def test_unknown_parameter_type_raises(self):
        builder = ParameterUrlBuilder("http://p", [{"name": "x", "type": "uuid"}])

        with pytest.raises(ValueError, match="Unsupported parameter type"):
            builder(0)

    def test_synthesized_pairs_share_path_on_second_base(self):
        source = SynthesizedPairSource(
            iterations=3,
            base_url="http://prod",
            base_url2="http://stage",
            url_builder=lambda i: f"http://prod/img/{i}.png",
        )

        requests = list(source)

        assert [r.index for r in requests] == [1, 2, 3]
        assert requests[2].url1 == "http://prod/img/2.png"
        assert requests[2].url2 == "http://stage/img/2.png"

    def test_synthesized_source_rejects_zero_iterations(self):
        with pytest.raises(SourceError):
            SynthesizedPairSource(0, "http://p", "http://s")
