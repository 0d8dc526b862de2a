"""Run the bridge with uvicorn."""

import argparse
import os

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Telegram to OpenAI assistant bridge")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    args = parser.parse_args()

    uvicorn.run("assistant_bridge.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
