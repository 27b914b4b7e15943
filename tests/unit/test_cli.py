"""
CLI tests: command parsing, table rendering and the click entry point.
"""

import json
import os

import click
import pytest
from click.testing import CliRunner

from klondike.core import GameSettings, GameState, SaveSerializer, Suit
from klondike.ui.cli import CLICommand, CLIInputHandler, CLIRenderer, main

from tests.helpers import make_state, nearly_won_state, up


@pytest.mark.unit
@pytest.mark.fast
class TestCLIInputHandler:

    @pytest.mark.parametrize("line, expected", [
        ("d", CLICommand("deal")),
        ("HIT", CLICommand("deal")),
        ("m t1 t2", CLICommand("move", ("t1", "t2"))),
        ("move waste f1 1", CLICommand("move", ("waste", "f1", "1"))),
        ("c t3", CLICommand("collect", ("t3",))),
        ("ff", CLICommand("finish")),
        ("s", CLICommand("save")),
        ("l game.json", CLICommand("load", ("game.json",))),
        ("  q  ", CLICommand("quit")),
    ])
    def test_parse(self, line, expected):
        assert CLIInputHandler.parse(line) == expected

    @pytest.mark.parametrize("line", ["", "jump", "m t1", "c", "m t1 t2 0", "m t1 t2 x", "u now"])
    def test_parse_rejects(self, line):
        with pytest.raises(click.BadParameter):
            CLIInputHandler.parse(line)

    def test_move_count(self):
        assert CLIInputHandler.parse("m t4 t5").move_count == 1
        assert CLIInputHandler.parse("m t4 t5 3").move_count == 3


@pytest.mark.unit
@pytest.mark.fast
class TestCLIRenderer:

    def test_face_down_cards_are_hidden(self):
        assert CLIRenderer.format_card(up("AH")[0].encode()) == " AH"
        assert CLIRenderer.format_card(up("AH")[0].with_face(False).encode()) == " ##"

    def test_render_table(self):
        state = make_state(tableaux={0: up("KS")}, waste=up("2C", "3C", "4C", "5C"), foundations={1: up("AH")})
        text = CLIRenderer.render_table(state.create_snapshot(), score=15, pass_limit=3)
        lines = text.splitlines()

        assert lines[0].startswith("deck [ 0] pass 0/3")
        assert "waste:  3C  4C  5C" in lines[0]
        assert "f2: AH" in lines[1]
        assert "f1:--" in lines[1]
        assert "t1:  KS" in text
        assert "t7: --" in text
        assert lines[-1] == "Score: 15"

    def test_render_without_score(self):
        text = CLIRenderer.render_table(GameState().create_snapshot())
        assert "Score" not in text
        assert "pass" not in text


@pytest.mark.unit
class TestCLIMain:

    def setup_method(self):
        self.runner = CliRunner()

    def test_deals_and_quits(self):
        result = self.runner.invoke(main, ["--seed", "3"], input="help\nq\n")
        assert result.exit_code == 0, result.output
        assert "deck [24]" in result.output
        assert "Commands:" in result.output
        assert "t7:" in result.output

    def test_end_of_input_quits(self):
        result = self.runner.invoke(main, ["--seed", "3"], input="")
        assert result.exit_code == 0

    def test_hit(self):
        result = self.runner.invoke(main, ["--seed", "3", "--draw", "1"], input="d\nq\n")
        assert result.exit_code == 0
        assert "deck [23]" in result.output

    def test_invalid_draw(self):
        result = self.runner.invoke(main, ["--draw", "2"])
        assert result.exit_code == 2

    def test_unknown_command_and_pile(self):
        result = self.runner.invoke(main, ["--seed", "3"], input="jump\nc t9\nq\n")
        assert result.exit_code == 0
        assert "unknown command 'jump'" in result.output
        assert "Unknown pile id" in result.output

    def test_undo_disabled(self):
        result = self.runner.invoke(main, ["--seed", "3"], input="u\nq\n")
        assert "Undo is disabled" in result.output

    def test_undo_enabled(self):
        result = self.runner.invoke(main, ["--seed", "3", "--allow-undo"], input="d\nu\nu\nq\n")
        assert result.exit_code == 0
        assert "Nothing to undo." in result.output

    def test_save_and_resume(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["--seed", "8", "--draw", "1"], input="d\ns game.json\nq\n")
            assert result.exit_code == 0
            assert "Saved to game.json" in result.output
            assert os.path.exists("game.json")
            with open("game.json", encoding="utf-8") as f:
                payload = json.load(f)
            assert payload['settings']['difficulty'] == 1

            resumed = self.runner.invoke(main, ["--load", "game.json"], input="q\n")
            assert resumed.exit_code == 0
            assert "deck [23]" in resumed.output

    def test_save_to_unwritable_path(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["--seed", "8"], input="s no_such_dir/game.json\nq\n")
            assert result.exit_code == 0
            assert "Cannot save" in result.output
            assert not os.path.exists("no_such_dir")

    def test_save_without_path_prints_payload(self):
        result = self.runner.invoke(main, ["--seed", "8"], input="s\nq\n")
        assert result.exit_code == 0
        assert '"foundationSuitBindings"' in result.output

    def test_load_missing_file(self):
        with self.runner.isolated_filesystem():
            result = self.runner.invoke(main, ["--load", "nope.json"], input="q\n")
            assert result.exit_code == 0
            assert "Cannot read save" in result.output

    def test_load_invalid_file(self):
        with self.runner.isolated_filesystem():
            with open("bad.json", "w", encoding="utf-8") as f:
                f.write("{\"piles\": []}")
            result = self.runner.invoke(main, ["--load", "bad.json"], input="q\n")
            assert "is invalid" in result.output


@pytest.mark.unit
def test_finish_command_wins(tmp_path):
    path = tmp_path / "nearly.json"
    SaveSerializer.serialize_to_file(nearly_won_state(), GameSettings(), str(path))
    result = CliRunner().invoke(main, ["--load", str(path)], input="ff\n")
    assert result.exit_code == 0
    assert "You won!" in result.output
    assert f"f{Suit.DIAMONDS.value + 1}: KD" in result.output
