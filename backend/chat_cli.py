import asyncio
import getpass
import sys

from studygroup.client.api import DEFAULT_BASE_URL, StudyGroupAPI
from studygroup.client.chat import ChatSession
from studygroup.core.exceptions import StudyGroupError
from studygroup.services.assistant_service import strip_trigger

BASE_URL = DEFAULT_BASE_URL


def render(session: ChatSession, seen: set):
    for msg in session.messages:
        if msg.id in seen:
            continue
        seen.add(msg.id)
        if msg.sender == "System":
            colour = "1;32"
        elif msg.sender == "AI":
            colour = "1;35"
        else:
            colour = "1;34"
        reply = f" (reply to {msg.parent_id})" if msg.parent_id else ""
        print(f"[\033[{colour}m{msg.sender}\033[0m {msg.timestamp}]{reply}: {msg.text}")
    while session.errors:
        print(f"[\033[1;31mERROR\033[0m]: {session.errors.pop(0)}")


async def chat():
    print("      \033[1;36m*** STUDY GROUP CHAT ***\033[0m")
    print("      \033[0;33mCommands: /react <message id> <emoji>, /refresh, /exit. Start a message with @ai to ask the assistant.\033[0m\n")

    async with StudyGroupAPI(BASE_URL) as api:
        # 1. Log in
        username = input("Username: ").strip()
        password = getpass.getpass("Password: ")
        try:
            profile = await api.login(username, password)
            groups = await api.list_groups()
        except StudyGroupError as e:
            print(f"Login failed: {e.message}")
            return
        print(f"Logged in as {profile.name}.\n")

        mine = [g for g in groups if username in g.members] or groups
        for i, group in enumerate(mine):
            print(f"  {i}. {group.group_name} ({len(group.members)} members)")
        if not mine:
            print("No groups yet.")
            return

        choice = input("Open group #: ").strip() or "0"
        try:
            group = mine[int(choice)]
        except (ValueError, IndexError):
            print("Unknown group.")
            return
        if username not in group.members:
            group = await api.join_group(group.id)

        session = ChatSession(api, group, username)
        seen = set()
        await session.load()
        render(session, seen)

        # 2. Loop chat
        while True:
            try:
                user_input = input(f"[\033[1;34m{username}\033[0m]: ")
                if not user_input.strip():
                    continue
                if user_input.lower() in ["/exit", "exit", "quit"]:
                    print("Exiting session.")
                    break
                if user_input == "/refresh":
                    await session.refresh()
                elif user_input.startswith("/react "):
                    parts = user_input.split()
                    if len(parts) == 3:
                        try:
                            updated = await session.toggle_reaction(parts[1], parts[2])
                            print(f"Reactions on {updated.id}: {updated.reactions}")
                        except StudyGroupError:
                            pass  # queued in session.errors, printed by render()
                else:
                    if strip_trigger(user_input):
                        print("[\033[1;35mAI\033[0m]: Thinking...", end="\r")
                    await session.send(user_input)
                render(session, seen)

            except KeyboardInterrupt:
                print("\nSession ended by user.")
                break

if __name__ == "__main__":
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(chat())
