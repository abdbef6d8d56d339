"""Cortex - chat client with web-grounded answers

Simple interactive CLI around the conversation controller.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from cortex.agents.conversation import ConversationController
from cortex.models.chat import Message

HELP = """Commands:
  /new            archive this chat and start a new one
  /web on|off     toggle web search
  /history        list archived chats
  /load N         reopen archived chat N
  /delete N       delete archived chat N
  /attach PATH    attach an image to the next message
  /quit           exit"""


def render(message: Message) -> str:
    who = "you" if message.is_user else "bot"
    image = " [image]" if message.has_image else ""
    return f"[{who}]{image} {message.text}"


async def read_line(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


async def handle_command(controller: ConversationController, line: str, state: dict) -> bool:
    """Run a slash command. Returns False when the loop should stop."""
    command, _, arg = line.partition(" ")
    arg = arg.strip()

    if command == "/quit":
        return False
    if command == "/new":
        thread = await controller.new_chat()
        print(f"[*] Archived: {thread.title}" if thread else "[*] New chat")
    elif command == "/web":
        controller.allow_web_access = arg.lower() != "off"
        print(f"[*] Web search {'on' if controller.allow_web_access else 'off'}")
    elif command == "/history":
        if not controller.history:
            print("[*] No archived chats")
        for i, thread in enumerate(controller.history):
            print(f"  {i}. {thread.title} ({thread.created_at:%Y-%m-%d %H:%M}, {len(thread.messages)} messages)")
    elif command in ("/load", "/delete"):
        try:
            index = int(arg)
            thread = controller.history[index]
        except (ValueError, IndexError):
            print(f"[!] No archived chat {arg!r}")
            return True
        if command == "/load":
            controller.load_chat(thread)
            for message in controller.messages:
                print(render(message))
        else:
            controller.delete_chats([index])
            print(f"[*] Deleted: {thread.title}")
    elif command == "/attach":
        path = Path(arg).expanduser()
        if not path.is_file():
            print(f"[!] Not a file: {path}")
        else:
            state["attachment"] = path.read_bytes()
            print(f"[*] Attached {path.name} ({len(state['attachment'])} bytes)")
    else:
        print(HELP)
    return True


async def run_chat(allow_web: bool, search_mode: str | None = None):
    """Interactive loop: each line is one turn."""
    controller = ConversationController(allow_web_access=allow_web, web_search_mode=search_mode)
    if controller.availability_message:
        print(f"[!] {controller.availability_message}")
    print(HELP)

    state: dict = {"attachment": None}
    while True:
        for message in controller.collect_generated_images():
            print(render(message))
        try:
            line = (await read_line("> ")).strip()
        except (EOFError, KeyboardInterrupt):
            break

        if line.startswith("/"):
            if not await handle_command(controller, line, state):
                break
            continue

        before = len(controller.messages)
        accepted = await controller.submit(line, state["attachment"])
        if not accepted:
            print("[!] Message not sent")
            continue
        state["attachment"] = None

        if controller.pending_image_prompt:
            await controller.wait_for_generated_image(timeout=120)

        # Skip the echo of the user's own message.
        for message in controller.messages[before + 1:]:
            print(render(message))


def main():
    parser = argparse.ArgumentParser(description="Cortex chat client")
    parser.add_argument("--no-web", action="store_true", help="Disable web search")
    parser.add_argument(
        "--search-mode",
        choices=["always", "auto"],
        help="Search on every message, or only when the message looks time-sensitive (default: from config)",
    )

    args = parser.parse_args()

    try:
        asyncio.run(run_chat(not args.no_web, args.search_mode))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
