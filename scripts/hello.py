#!/usr/bin/env python3
"""
Hello - send a single prompt to the completion provider.

Exercises the same completion call the controller makes, without
Kubernetes. Requires OPENAI_API_KEY (environment or .env file) unless
--mock is given.
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from aioperator.services.completion import CompletionInvoker, MockCompletion
from aioperator.services.config import Config
from aioperator.services.errors import CompletionError

DEFAULT_PROMPT = (
    "You are an expert Python AI agent programmer. "
    "Write a hello world program that calls a chat completion API."
)


async def say_hello(prompt: str, use_mock: bool = False, model: str = None) -> int:
    """Send one prompt and print the answer. Returns a process exit code."""
    
    config = Config.from_env()
    
    if use_mock:
        completion = MockCompletion()
    else:
        completion = CompletionInvoker(
            model=model or config.openai_model,
            base_url=config.openai_base_url,
            timeout=config.completion_timeout,
        )
    
    print(f"Prompt: {prompt}")
    print()
    
    try:
        answer = await completion.invoke(prompt)
    except CompletionError as e:
        print(f"ERROR: {e}")
        return 1
    
    print(f"Answer: {answer}")
    return 0


def main():
    """Main entry point."""
    import argparse
    
    parser = argparse.ArgumentParser(description="Send one prompt to the completion provider")
    parser.add_argument(
        "--prompt",
        default=DEFAULT_PROMPT,
        help="Prompt to send",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use the mock provider instead of a real LLM",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model name (defaults to OPENAI_MODEL)",
    )
    
    args = parser.parse_args()
    
    sys.exit(asyncio.run(say_hello(
        prompt=args.prompt,
        use_mock=args.mock,
        model=args.model,
    )))


if __name__ == "__main__":
    main()
