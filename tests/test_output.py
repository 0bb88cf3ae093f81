import io
import json

from conftest import TRACK1_APP, position_of
from lro_scan.src.lro_scan.main import build_arg_parser, config_from_args, main
from lro_scan.src.lro_scan.config import ON_ERROR_SKIP
from lro_scan.src.lro_scan.models.ast_models import Confidence, Finding, Position, Rule
from lro_scan.src.lro_scan.outputs.output import format_finding, print_findings, to_json

TRACK1 = Finding(Rule.TRACK1, Position("internal/vm/vm.go", 15, 2))
PANDORA = Finding(Rule.PANDORA_MISMATCH, Position("internal/pandora/p.go", 30, 23),
                  Confidence.LIKELY_FALSE_POSITIVE, "example.com/sdk.Client.Delete")


class TestReporter:
    def test_format_finding(self):
        assert format_finding(TRACK1) == "Track 1 Hit: internal/vm/vm.go:15:2"
        assert format_finding(PANDORA) == "Pandora Hit: internal/pandora/p.go:30:23 (likely false positive)"

    def test_print_findings(self):
        out = io.StringIO()
        print_findings([TRACK1, PANDORA], out)
        assert out.getvalue().splitlines() == [format_finding(TRACK1), format_finding(PANDORA)]

    def test_print_findings_follows_redirected_stdout(self, capsys):
        print_findings([TRACK1])
        assert capsys.readouterr().out == format_finding(TRACK1) + "\n"

    def test_to_json(self):
        data = json.loads(to_json([TRACK1, PANDORA]))
        assert data[0] == {
            "rule": "Track1", "file": "internal/vm/vm.go", "line": 15, "col": 2,
            "confidence": "Definite", "callee": None,
        }
        assert Rule(data[1]["rule"]) is Rule.PANDORA_MISMATCH
        assert Confidence(data[1]["confidence"]) is Confidence.LIKELY_FALSE_POSITIVE


class TestCli:
    def test_config_from_args(self):
        args = build_arg_parser().parse_args(
            ["-j", "3", "--on-inventory-error", "skip", "--sdk-prefix", "example.com/sdk/", "--no-heuristic",
             "--bare-calls", "./internal/..."])
        cfg = config_from_args(args)
        assert args.patterns == ["./internal/..."]
        assert cfg.workers == 3
        assert cfg.on_inventory_error == ON_ERROR_SKIP
        assert cfg.pandora_package_prefixes == ("example.com/sdk/",)
        assert cfg.apply_confidence_heuristic is False
        assert cfg.include_bare_calls is True

    def test_main_prints_findings(self, go_module, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("GOMODCACHE", str(tmp_path / "modcache"))
        assert main(["-C", str(go_module), "./internal/vm"]) == 0
        line, col = position_of(TRACK1_APP, "_, err := client.CreateOrUpdate", "_")
        assert capsys.readouterr().out.splitlines()[0] == f"Track 1 Hit: internal/vm/vm.go:{line}:{col}"

    def test_main_json(self, go_module, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("GOMODCACHE", str(tmp_path / "modcache"))
        assert main(["-C", str(go_module), "--json", "./..."]) == 0
        data = json.loads(capsys.readouterr().out)
        assert {d["rule"] for d in data} == {"Track1", "PandoraMismatch"}

    def test_main_load_error(self, tmp_path, capsys):
        assert main(["-C", str(tmp_path), "./..."]) == 1
        assert capsys.readouterr().err.startswith("load: ")
