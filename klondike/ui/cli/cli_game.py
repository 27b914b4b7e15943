"""Klondike CLI game.

A line-based front end over ``GameController``. It subscribes to the event
bus for feedback messages and renders the table from snapshots after every
command.
"""

import asyncio
import logging
from typing import Optional

import click

from ...controller import GameController
from ...core import (
    EventBus, EventType, GameConfigError, GameEvent, GameSettings, SaveSerializer, Scoring,
    SnapshotError, SolitaireError,
)
from .input_handler import CLICommand, CLIInputHandler
from .render import CLIRenderer


class KlondikeCLI:
    """Klondike CLI game.

    Owns one event bus, one scorer and one controller for the session.
    """

    def __init__(self, settings: GameSettings, logger: Optional[logging.Logger] = None):
        """Initialize the CLI game.

        Args:
            settings: Settings for new games
            logger: Optional logger
        """
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)
        self.event_bus = EventBus(logger=self.logger)
        self.scoring = Scoring(self.event_bus, logger=self.logger)
        self.controller = GameController(
            event_bus=self.event_bus,
            logger=self.logger,
            scoring=self.scoring,
        )
        self._running = False
        self._subscribe_feedback()

    def _subscribe_feedback(self) -> None:
        messages = {
            EventType.STOCK_EXHAUSTED: lambda e: f"The deck is exhausted after {e['passes']} passes.",
            EventType.INVALID_DROP_OVER_PILE: lambda e: f"Cannot drop there ({e['on_pile'].pile_id}).",
            EventType.DRAG_REJECTED: lambda e: f"That card cannot be picked up from {e['from_pile'].pile_id}.",
            EventType.REJECT_COLLECT_CARD: lambda e: f"Nothing on {e['pile'].pile_id} can go to a foundation.",
            EventType.FAST_FORWARD_POSSIBLE: lambda e: "Every card is reachable, type 'finish' to collect them.",
            EventType.GAME_ENDED: lambda e: "You won!" + (f" Final score: {e['score']}" if e['score'] is not None else ""),
        }
        for event_type, message in messages.items():
            self.event_bus.subscribe(event_type, self._echo_with(message))

    @staticmethod
    def _echo_with(message):
        def listener(event: GameEvent) -> None:
            click.echo(message(event))
        return listener

    async def start(self, load_path: Optional[str] = None) -> bool:
        """Load a saved game, or start and deal a new one."""
        if load_path:
            try:
                text = SaveSerializer.read_file(load_path)
            except SnapshotError as e:
                click.echo(f"Cannot read save: {e}")
                return False
            if not await self.controller.load_save(text):
                click.echo(f"Save file {load_path} is invalid.")
                return False
            return True

        await self.controller.initialize(self.settings)
        return await self.controller.on_deck_interact()

    async def run(self, load_path: Optional[str] = None) -> None:
        """Run the game loop until quit or end of input."""
        if not await self.start(load_path):
            return
        self._running = True
        self.render()

        while self._running:
            try:
                line = click.prompt("klondike", prompt_suffix="> ", default="", show_default=False)
            except click.Abort:
                break
            if not line.strip():
                continue
            try:
                command = CLIInputHandler.parse(line)
            except click.BadParameter as e:
                click.echo(f"Error: {e.format_message()}")
                continue
            try:
                changed = await self.dispatch(command)
            except SolitaireError as e:
                click.echo(f"Error: {e}")
                continue
            if changed:
                self.render()

    async def dispatch(self, command: CLICommand) -> bool:
        """Run one parsed command.

        Returns:
            True if the table should be redrawn
        """
        controller = self.controller
        name = command.name

        if name == 'deal':
            return await controller.on_deck_interact()
        if name == 'move':
            return await self._move(command.args[0], command.args[1], command.move_count)
        if name == 'collect':
            controller.get_pile(command.args[0])
            return await controller.on_try_auto_collect(command.args[0])
        if name == 'finish':
            return await controller.on_fast_forward()
        if name in ('undo', 'redo'):
            if not controller.settings.allow_undo:
                click.echo("Undo is disabled, start with --allow-undo.")
                return False
            done = await (controller.undo() if name == 'undo' else controller.redo())
            if not done:
                click.echo(f"Nothing to {name}.")
            return done
        if name == 'save':
            return await self._save(command.args[0] if command.args else None)
        if name == 'load':
            return await self._load(command.args[0])
        if name == 'new':
            await controller.initialize(self.settings)
            return await controller.on_deck_interact()
        if name == 'help':
            click.echo(CLIRenderer.render_help())
            return False
        self._running = False
        return False

    async def _move(self, source: str, target: str, count: int) -> bool:
        pile = self.controller.get_pile(source)
        self.controller.get_pile(target)  # unknown ids raise here, outside the controller
        index = len(pile) - count
        if index < 0:
            click.echo(f"{pile.pile_id} holds only {len(pile)} cards.")
            return False
        if not await self.controller.on_drag_validate(source, index):
            return False
        await self.controller.on_drag_over_target(target)
        return await self.controller.on_drop(target)

    async def _save(self, path: Optional[str]) -> bool:
        payload = await self.controller.request_save()
        if payload is None:
            return False
        try:
            if path is None:
                click.echo(SaveSerializer.dump_payload(payload))
                return False
            SaveSerializer.write_payload(payload, path)
        except SnapshotError as e:
            click.echo(f"Cannot save: {e}")
            return False
        click.echo(f"Saved to {path}")
        return False

    async def _load(self, path: str) -> bool:
        try:
            text = SaveSerializer.read_file(path)
        except SnapshotError as e:
            click.echo(f"Cannot read save: {e}")
            return False
        if not await self.controller.load_save(text):
            click.echo(f"Save file {path} is invalid, the current game is unchanged.")
            return False
        return True

    def render(self) -> None:
        """Draw the table."""
        click.echo(CLIRenderer.render_table(
            self.controller.get_snapshot(),
            score=self.controller.score,
            pass_limit=self.controller.settings.pass_limit,
        ))


@click.command()
@click.option('--draw', 'difficulty', type=click.Choice(['1', '3']), default='3', show_default=True,
              help='Cards turned per deck hit.')
@click.option('--pass-limit', type=click.IntRange(min=0), default=0, show_default=True,
              help='Maximum waste re-collections, 0 for unlimited.')
@click.option('--allow-undo', is_flag=True, help='Enable undo/redo (disables scoring).')
@click.option('--scoring', is_flag=True, help='Keep the standard score.')
@click.option('--seed', type=int, default=None, help='Shuffle seed for a reproducible deal.')
@click.option('--load', 'load_path', type=click.Path(dir_okay=False), default=None,
              help='Resume a saved game.')
@click.option('-v', '--verbose', is_flag=True, help='Log engine activity.')
def main(difficulty: str, pass_limit: int, allow_undo: bool, scoring: bool,
         seed: Optional[int], load_path: Optional[str], verbose: bool) -> None:
    """Play Klondike Solitaire in the terminal."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format='%(message)s')
    try:
        settings = GameSettings.create(
            difficulty=int(difficulty),
            pass_limit=pass_limit,
            allow_undo=allow_undo,
            scoring_enabled=scoring,
            seed=seed,
        )
    except GameConfigError as e:
        raise click.UsageError(str(e))

    game = KlondikeCLI(settings, logger=logging.getLogger('klondike'))
    try:
        asyncio.run(game.run(load_path))
    except KeyboardInterrupt:
        click.echo("\nGame interrupted")


if __name__ == "__main__":
    main()
