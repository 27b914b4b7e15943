"""Text rendering for the Klondike CLI.

This module turns table snapshots into plain text. It only reads
snapshots, never the live piles.
"""

from typing import List, Optional

from ...core import Card, GameSnapshot, PileSnapshot

FACE_DOWN = "##"
EMPTY_SLOT = "--"
WASTE_FAN = 3


class CLIRenderer:
    """CLI renderer.

    Every method is a pure function of the snapshot it is given.
    """

    @staticmethod
    def format_card(code: int) -> str:
        """Render one card code, face-down cards hidden."""
        card = Card.decode(code)
        if not card.face_up:
            return FACE_DOWN.rjust(3)
        return str(card).rjust(3)

    @staticmethod
    def render_table(snapshot: GameSnapshot, score: Optional[int] = None,
                     pass_limit: int = 0) -> str:
        """Render the whole table.

        Args:
            snapshot: Snapshot of the table
            score: Current score, omitted when None
            pass_limit: Pass limit of the game, 0 for unlimited

        Returns:
            Multi-line text of the table
        """
        lines = [
            CLIRenderer._render_stock_line(snapshot.deck, snapshot.waste, pass_limit),
            CLIRenderer._render_foundations(snapshot.foundations),
            "",
        ]
        for tableau in snapshot.tableaux:
            lines.append(CLIRenderer._render_tableau(tableau))
        if score is not None:
            lines.append("")
            lines.append(f"Score: {score}")
        return "\n".join(lines)

    @staticmethod
    def _render_stock_line(deck: PileSnapshot, waste: PileSnapshot, pass_limit: int) -> str:
        deck_text = f"deck [{len(deck):2d}]"
        if pass_limit:
            deck_text += f" pass {deck.passes}/{pass_limit}"
        shown = waste.cards[-WASTE_FAN:]
        waste_text = " ".join(CLIRenderer.format_card(code) for code in shown) or EMPTY_SLOT
        return f"{deck_text}   waste: {waste_text}"

    @staticmethod
    def _render_foundations(foundations) -> str:
        parts: List[str] = []
        for foundation in foundations:
            top = CLIRenderer.format_card(foundation.cards[-1]) if foundation.cards else EMPTY_SLOT
            parts.append(f"{foundation.pile_id}:{top}")
        return "  ".join(parts)

    @staticmethod
    def _render_tableau(tableau: PileSnapshot) -> str:
        cards = " ".join(CLIRenderer.format_card(code) for code in tableau.cards)
        return f"{tableau.pile_id}: {cards or EMPTY_SLOT}"

    @staticmethod
    def render_help() -> str:
        """Render the command reference."""
        return "\n".join([
            "Commands:",
            "  d | deal | hit            deal, turn cards from the deck, or recycle the waste",
            "  m SRC DST [COUNT]         move COUNT cards (default 1) from SRC to DST",
            "  c PILE                    send the top card of PILE to a foundation",
            "  ff | finish               move every collectable card to the foundations",
            "  u | undo, r | redo        undo or redo (only with --allow-undo)",
            "  s | save [FILE]           save the game, printing it when no FILE is given",
            "  l | load FILE             load a saved game",
            "  n | new                   start a new game with the same settings",
            "  h | help, q | quit",
            "Piles: deck, waste, t1..t7, f1..f4",
        ])
