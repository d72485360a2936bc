"""Tests for the completion chime."""

from __future__ import annotations

from zen_focus.focus.chime import ChimePlayer


async def test_missing_player_is_swallowed(tmp_path):
    player = ChimePlayer(
        chime_file=tmp_path / "chime.wav",
        player_command=["zen-focus-no-such-player"],
    )

    player.play()
    await player.wait()


async def test_failing_player_is_swallowed(tmp_path):
    player = ChimePlayer(chime_file=tmp_path / "chime.wav", player_command=["false"])

    player.play()
    await player.wait()


async def test_no_file_rings_bell(capsys):
    player = ChimePlayer()

    player.play()
    await player.wait()

    assert capsys.readouterr().out == "\a"


def test_play_without_event_loop_rings_bell(capsys):
    ChimePlayer(player_command=["true"]).play()

    assert capsys.readouterr().out == "\a"
