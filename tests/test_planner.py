import json

import gpxpy
import pandas as pd
import pytest

from quest_route_ai import planner, route_builder
from quest_route_ai.catalog import builtin_catalog
from quest_route_ai.geo import Point
from quest_route_ai.selection import Selection


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("QRAI_STORE_DIR", str(tmp_path / "store"))


def test_plan_selection_builds_route():
    summary = planner.plan_selection(builtin_catalog(), Selection([1, 3, 4], ["i3"]))
    assert len(summary.points) == 4
    assert route_builder.is_permutation(summary.order, 4)
    assert len(summary.legs_km) == 3
    assert summary.total_km == pytest.approx(sum(summary.legs_km))


def test_plan_selection_bad_start_index_falls_back(caplog):
    summary = planner.plan_selection(builtin_catalog(), Selection([1, 2]), start_index=5)
    assert summary.order[0] == 0
    assert "out of range" in caplog.text


def test_plan_selection_empty():
    summary = planner.plan_selection(builtin_catalog(), Selection())
    assert summary.order == []
    assert summary.total_km == 0.0


def test_format_route():
    pts = [Point(0.0, 0.0, "Start"), Point(0.0, 1.0, "Next")]
    summary = planner.summarize_route(pts, [0, 1])
    assert planner.format_route(summary) == [" 1. Start", " 2. Next (+111 km)"]


def test_cli_writes_outputs(tmp_path, capsys):
    out_csv = tmp_path / "route.csv"
    out_gpx = tmp_path / "route.gpx"
    summary = planner.main(
        [
            "--quests",
            "1,4",
            "--items",
            "i1",
            "--output",
            str(out_csv),
            "--gpx",
            str(out_gpx),
            "--base-url",
            "https://example.test/planner",
        ]
    )
    assert route_builder.is_permutation(summary.order, 3)

    df = pd.read_csv(out_csv)
    assert list(df["step"]) == [1, 2, 3]
    assert list(df["label"]) == [p.label for p in summary.ordered_points]
    assert df["cumulative_km"].iloc[-1] == pytest.approx(summary.total_km, abs=0.01)

    with open(out_gpx) as f:
        gpx = gpxpy.parse(f)
    assert len(gpx.waypoints) == 3
    assert gpx.waypoints[0].name.startswith("1. ")
    assert len(gpx.tracks[0].segments[0].points) == 3

    out = capsys.readouterr().out
    assert "Optimized turn-in order:" in out
    assert "Total selected XP: 23,250" in out
    assert "Share link: https://example.test/planner?q=1,4&items=i1" in out


def test_cli_share_token():
    summary = planner.main(["--share", "https://example.test/?q=5,6&items=i1"])
    # All three entries sit at Cenarion Hold
    assert len(summary.points) == 3
    assert summary.total_km == pytest.approx(0.0)


def test_cli_bad_share_token():
    with pytest.raises(SystemExit):
        planner.main(["--share", "q=abc"])


def test_cli_all_filtered_horde():
    summary = planner.main(["--all-filtered", "--faction", "Horde"])
    assert [p.label for p in summary.points] == ["A Donation of Runecloth"]
    assert summary.order == [0]


def test_cli_empty_selection(capsys):
    summary = planner.main([])
    assert summary.order == []
    assert "Select quests/items to build a route." in capsys.readouterr().out


def test_cli_config_defaults(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "planner_config.json").write_text(json.dumps({"min_xp": 9000}))
    summary = planner.main(["--all-filtered"])
    assert {p.label for p in summary.points} == {"The Battle for Andorhal", "The Calling"}


def test_cli_invalid_config_is_ignored(tmp_path, caplog):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text("bogus: 1\n")
    summary = planner.main(["--config", str(cfg), "--quests", "2"])
    assert len(summary.points) == 1
    assert "Failed to load config" in caplog.text


def test_load_config_yaml(tmp_path):
    cfg = tmp_path / "planner.yaml"
    cfg.write_text("faction: Alliance\nmax_iterations: 10\n")
    loaded = planner.load_config(str(cfg))
    assert loaded.faction == "Alliance"
    assert loaded.max_iterations == 10
    with pytest.raises(FileNotFoundError):
        planner.load_config(str(tmp_path / "missing.yaml"))


def test_cli_save_and_use_saved():
    planner.main(["--quests", "3", "--faction", "Alliance", "--save"])
    summary = planner.main(["--use-saved"])
    assert [p.label for p in summary.points] == ["A Donation of Mageweave"]


def test_cli_export_and_import_plan(tmp_path):
    plan_path = tmp_path / "plan.json"
    planner.main(["--quests", "7", "--items", "i4", "--export-plan", str(plan_path)])
    data = json.loads(plan_path.read_text())
    assert data["selectedQuests"] == [7]
    assert data["selectedItems"] == ["i4"]

    summary = planner.main(["--import-plan", str(plan_path)])
    assert len(summary.points) == 2


def test_cli_custom_catalog(tmp_path):
    cat = {
        "quests": [
            {"id": 1, "name": "West", "lat": 0.0, "lng": 0.0},
            {"id": 2, "name": "Far East", "lat": 0.0, "lng": 20.0},
            {"id": 3, "name": "East", "lat": 0.0, "lng": 10.0},
        ]
    }
    path = tmp_path / "cat.json"
    path.write_text(json.dumps(cat))
    summary = planner.main(["--catalog", str(path), "--all-filtered"])
    assert [p.label for p in summary.ordered_points] == ["West", "East", "Far East"]


def test_debug_log(tmp_path, capsys):
    log_path = tmp_path / "debug.log"
    args = type("Args", (), {"verbose": True, "debug": str(log_path)})()
    planner.debug_log(args, "hello")
    planner.debug_log(None, "ignored")
    assert log_path.read_text() == "hello\n"
    assert "hello" in capsys.readouterr().out


def test_cli_use_saved_keeps_explicit_filters():
    planner.main(["--quests", "3", "--faction", "Alliance", "--save"])
    summary = planner.main(["--use-saved", "--faction", "Horde", "--all-filtered"])
    labels = [p.label for p in summary.points]
    # Saved quest 3 stays selected and the Horde quest 2 is added
    assert [(p.latitude, p.longitude) for p in summary.points] == [(18.0, 30.0), (21.0, -38.0)]
    assert labels == ["A Donation of Runecloth", "A Donation of Mageweave"]


def test_cli_use_saved_restores_filters_when_not_given():
    planner.main(["--min-xp", "9000", "--save"])
    summary = planner.main(["--use-saved", "--all-filtered"])
    assert {p.label for p in summary.points} == {"The Battle for Andorhal", "The Calling"}


def test_cli_import_plan_keeps_explicit_filters(tmp_path):
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(json.dumps({"selectedQuests": [], "faction": "Alliance"}))
    summary = planner.main(
        ["--import-plan", str(plan_path), "--faction", "Horde", "--all-filtered"]
    )
    assert [p.label for p in summary.points] == ["A Donation of Runecloth"]
    assert summary.points[0].longitude == 30.0


def test_cli_unknown_ids_warn_once(caplog, capsys):
    summary = planner.main(["--quests", "99"])
    assert summary.order == []
    assert caplog.text.count("unknown quest id 99") == 1
    assert "None of the selected ids are in the catalog." in capsys.readouterr().out


def test_plan_entries_matches_plan_selection():
    cat = builtin_catalog()
    sel = Selection([4, 5, 7], ["i2"])
    entries = [cat.quest(4), cat.quest(5), cat.quest(7), cat.item("i2")]
    assert planner.plan_entries(entries).order == planner.plan_selection(cat, sel).order
