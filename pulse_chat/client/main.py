"""Console client for the chat application."""
import asyncio
import sys
from typing import Set

from .app import ChatController
from .config import SERVER_URL
from .contacts import filter_contacts
from .conversation import Conversation
from .errors import ChatError, Unauthorized
from .storage import get_server_url


async def ask(prompt: str) -> str:
    return (await asyncio.to_thread(input, prompt)).strip()


class ConsoleClient:
    """Interactive console front-end over ChatController."""

    def __init__(self, server_url: str):
        self.controller = ChatController(server_url, on_redirect=self._on_redirect)
        self._shown: Set[str] = set()

    def _on_redirect(self) -> None:
        print("Please log in.")

    def _render(self, conversation: Conversation) -> None:
        me = self.controller.identity.username if self.controller.identity else ""
        for msg in conversation:
            if msg.id in self._shown:
                continue
            self._shown.add(msg.id)
            who = "(you)" if msg.is_from(me) else msg.sender_username
            print(f"[{msg.display_time}] {who}: {msg.body}")

    async def register(self) -> None:
        print("=== Register ===")
        email = await ask("Email: ")
        username = await ask("Username (min 6 chars): ")
        password = await ask("Password (min 6 chars): ")
        try:
            await self.controller.register(email, username, password)
            print("Registration successful. You can now log in.")
        except ChatError as exc:
            print(f"Registration failed: {exc}")

    async def login(self) -> bool:
        print("=== Login ===")
        email = await ask("Email: ")
        password = await ask("Password: ")
        try:
            identity = await self.controller.login(email, password)
        except ChatError as exc:
            print(f"Login failed: {exc}")
            return False
        print(f"Welcome, {identity.username}!")
        return True

    async def list_contacts(self) -> None:
        try:
            contacts = await self.controller.load_contacts()
        except Unauthorized:
            return
        except ChatError as exc:
            print(f"Could not fetch contacts: {exc}")
            return
        query = await ask("Filter (empty for all): ")
        for c in filter_contacts(contacts, query):
            print(f"- {c.name} ({c.status.value})")

    async def start_chat(self) -> None:
        if not self.controller.directory.contacts:
            try:
                await self.controller.load_contacts()
            except ChatError as exc:
                print(f"Could not fetch contacts: {exc}")
                return
        name = await ask("Contact: ")
        contact = self.controller.directory.find(name)
        if not contact:
            print("User not found.")
            return
        self._shown.clear()
        synchronizer = self.controller.synchronizer
        synchronizer.add_listener(self._render)
        try:
            print("Loading messages...")
            await self.controller.open_chat(contact)
            while self.controller.identity:
                print("\nChat commands: type a message, or /back")
                outbound = self.controller.outbound
                outbound.draft = await ask("> ")
                if outbound.draft == "/back":
                    outbound.draft = ""
                    break
                if not await self.controller.send() and outbound.draft.strip():
                    print("Not connected; message not sent.")
        except Unauthorized:
            return
        finally:
            synchronizer.remove_listener(self._render)
            await self.controller.close_chat()

    async def run(self) -> None:
        while True:
            if not self.controller.identity:
                print("\nMenu: [r]egister, [l]ogin, [q]uit")
                choice = (await ask("> ")).lower()
                if choice == "q":
                    return
                if choice == "r":
                    await self.register()
                if choice == "l":
                    await self.login()
                continue
            print("\nUser menu: [u]sers, [c]hat, [o]logout, [q]uit")
            sub = (await ask("> ")).lower()
            if sub == "q":
                await self.controller.close_chat()
                return
            if sub == "o":
                await self.controller.logout()
            if sub == "u":
                await self.list_contacts()
            if sub == "c":
                await self.start_chat()


def main() -> None:
    print("Pulse Chat Client")
    default_url = get_server_url() or SERVER_URL
    server_url = input(f"Server URL [{default_url}]: ").strip() or default_url
    try:
        asyncio.run(ConsoleClient(server_url).run())
    except (KeyboardInterrupt, EOFError):
        sys.exit(0)


if __name__ == "__main__":
    main()
