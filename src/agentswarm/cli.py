"""
Command-line entry point: run one conversation against a default agent.

Configuration comes from the environment (see agentswarm.config); the
flags only cover what changes from one invocation to the next.
"""

import argparse
import logging
import sys

from agentswarm.capabilities import BUILTIN_TOOL_NAMES
from agentswarm.config import SwarmConfig
from agentswarm.errors import SwarmError
from agentswarm.swarm import Swarm
from agentswarm.types import Agent, Response


def format_response(response: Response) -> str:
    """Render the messages of a run, one block per message."""
    lines = []
    for message in response.messages:
        speaker = message.sender or message.role.value
        if message.content:
            lines.append(f"{speaker}: {message.content}")
        for call in message.tool_calls:
            lines.append(f"{speaker}: -> {call.name}({call.arguments})")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentswarm",
        description="Run a single conversation with a tool-using agent",
    )
    parser.add_argument("prompt", help="User message to start the conversation")
    parser.add_argument("--model", default=None, help="Model for the agent (default: LLM_MODEL)")
    parser.add_argument("--instructions", default="You are a helpful assistant.",
                        help="System prompt for the agent")
    parser.add_argument("--max-turns", type=int, default=None, help="Maximum completion calls")
    parser.add_argument("--stream", action="store_true", help="Use streamed completions")
    parser.add_argument("--debug", action="store_true", help="Log every step")
    parser.add_argument("--no-tools", action="store_true", help="Do not offer the built-in tools")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SwarmConfig.from_env()
    agent = Agent(
        name="Assistant",
        model=args.model or config.llm.model,
        instructions=args.instructions,
        functions=[] if args.no_tools else list(BUILTIN_TOOL_NAMES),
    )

    with Swarm(config=config) as swarm:
        try:
            response = swarm.run(
                agent,
                [{"role": "user", "content": args.prompt}],
                stream=args.stream,
                debug=args.debug,
                max_turns=args.max_turns,
            )
        except SwarmError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    print(format_response(response))
    return 0


if __name__ == "__main__":
    sys.exit(main())
