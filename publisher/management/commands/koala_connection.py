"""
Show how this site is linked to Koala, and the address used to link it.

Site owners open the printed connection URL while signed in to Koala; Koala
then sends the ``connect`` command back with the secret token.

Usage:
    python manage.py koala_connection
    python manage.py koala_connection --site-url https://blog.example.com
    python manage.py koala_connection --disconnect
"""

from argparse import ArgumentParser

from django.core.management.base import BaseCommand

from publisher import connection


class Command(BaseCommand):
    help = "Report the Koala connection and print the URL used to connect"  # NOQA: A003

    def add_arguments(self, parser: ArgumentParser) -> None:
        parser.add_argument(
            "--site-url",
            help="Public address of this site (default: the SITE_URL setting)",
        )
        parser.add_argument(
            "--disconnect",
            action="store_true",
            help="Forget the current connection and replace the secret token",
        )

    def handle(self, *, site_url: str, disconnect: bool, **options) -> None:
        if disconnect:
            connection.disconnect()
            self.stdout.write(self.style.SUCCESS("Disconnected from Koala"))

        current = connection.get_connection()
        if current:
            self.stdout.write(
                f"Connected (integration {current.get('integration_id', '-')})"
            )
        else:
            self.stdout.write("Disconnected")

        self.stdout.write(f"Secret token: {connection.get_secret_token()}")
        self.stdout.write(f"Connection URL: {connection.connection_url(site_url)}")
