"""Terminal front-end for Palais Mental.

Usage:
    python palace_cli.py --name "Les capitales d'Europe"
    python palace_cli.py --server http://localhost:5051 --storage-dir ~/.palace
"""

import argparse
import logging
import os
import sys

from palace_session import PalaceSession, PalaceStorage, StoryClient

logging.basicConfig(
    format="[%(asctime)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.WARNING,
)

HELP = "[1-3] choisir  [s] sauvegarder  [r] recommencer  [q] quitter"


def _ask_yes_no(message: str) -> bool:
    answer = input(f"{message} [o/N] ").strip().lower()
    return answer in ("o", "oui", "y", "yes")


def _show(session: PalaceSession, out=sys.stdout):
    state = session.state
    print(f"\n🏰 {state.palace_name}\n", file=out)
    if state.story:
        print(state.story, file=out)
    if state.memory_tip:
        print(f"\n💡 {state.memory_tip}", file=out)
    if state.choices:
        print("\nQue souhaitez-vous faire ?", file=out)
        for i, choice in enumerate(state.choices, 1):
            print(f"  {i}. {choice}", file=out)
    if session.error:
        print(f"\n⚠ {session.error}", file=out)


def run(session: PalaceSession, name: str | None = None) -> int:
    if session.restore():
        print("Sauvegarde chargée.")
    if name:
        session.state.palace_name = name

    if not session.state.story:
        if not name:
            entered = input(f"Nom de votre palais mental [{session.state.palace_name}] : ").strip()
            if entered:
                session.state.palace_name = entered
        print("Création en cours...")
        if not session.start():
            print(f"⚠ {session.error}")
            return 1

    while True:
        _show(session)
        print(f"\n{HELP}")
        cmd = input("> ").strip().lower()
        if cmd == "q":
            return 0
        if cmd == "s":
            if session.save():
                print("Sauvegardé.")
            continue
        if cmd == "r":
            if session.reset():
                print("Palais effacé.")
                return 0
            continue
        if cmd.isdigit() and 1 <= int(cmd) <= len(session.state.choices):
            print("Génération en cours...")
            session.choose(session.state.choices[int(cmd) - 1])
            continue
        print(HELP)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Palais Mental terminal client")
    parser.add_argument("--server", default=os.environ.get("PALACE_SERVER", "http://localhost:5051"))
    parser.add_argument("--storage-dir", default=os.path.expanduser("~/.palais_mental"))
    parser.add_argument("--name", default=None, help="Palace theme for a new session")
    args = parser.parse_args(argv)

    session = PalaceSession(
        StoryClient(args.server),
        PalaceStorage(args.storage_dir),
        confirm=_ask_yes_no,
    )
    try:
        return run(session, name=args.name)
    except (KeyboardInterrupt, EOFError):
        print()
        return 0


if __name__ == "__main__":
    sys.exit(main())
