import json
import uuid

from django.core.management.base import BaseCommand, CommandError

from study.services.cards import ensure_card_states


def _parse_entries(payload, default_deck):
    if not isinstance(payload, list):
        raise CommandError("Expected a JSON list of card ids or {card_id, deck_id} objects")
    cards = []
    for entry in payload:
        if isinstance(entry, dict):
            card_id = entry.get("card_id")
            deck_id = entry.get("deck_id") or default_deck
        else:
            card_id, deck_id = entry, default_deck
        try:
            cards.append((
                uuid.UUID(str(card_id)),
                uuid.UUID(str(deck_id)) if deck_id else None,
            ))
        except ValueError:
            raise CommandError(f"Invalid card entry: {entry!r}") from None
    return cards


class Command(BaseCommand):
    help = "Create NEW scheduling rows for freshly imported cards"

    def add_arguments(self, parser):
        parser.add_argument("--user", required=True, help="UUID of the user")
        parser.add_argument("--file", required=True, help="JSON file with the card list")
        parser.add_argument("--deck", default=None, help="Deck UUID for entries without one")

    def handle(self, *args, **options):
        try:
            user_id = uuid.UUID(options["user"])
        except ValueError:
            raise CommandError(f"Invalid user id: {options['user']}") from None

        try:
            with open(options["file"]) as json_file:
                payload = json.load(json_file)
        except (OSError, json.JSONDecodeError) as e:
            raise CommandError(f"Error reading {options['file']}: {e}") from e

        cards = _parse_entries(payload, options.get("deck"))
        created = ensure_card_states(user_id, cards)

        self.stdout.write(
            self.style.SUCCESS(
                f"Imported {len(cards)} cards for user {user_id}: {created} new scheduling rows"
            )
        )
