"""
Command-line client for the storefront voice relay.

Streams a WAV file or typed lines to the relay as a shop's voice widget would
and writes the spoken replies to an MP3 file.

Usage:
    python client.py --shop demo.myshopify.com --text "Where is order 1001?"
    python client.py --shop demo.myshopify.com --wav question.wav --output reply.mp3
"""

import argparse
import asyncio
import logging
import sys

from voice_relay.config.logging_config import configure_logging
from voice_relay.services.audio_codec import load_wav_as_pcm16
from voice_relay.services.voice_client import VoiceRelayClient

logger = logging.getLogger("voice_relay")


def parse_args():
    parser = argparse.ArgumentParser(description="Talk to the storefront voice relay")
    parser.add_argument("--url", default="ws://localhost:8000/ws", help="Relay WebSocket URL")
    parser.add_argument("--shop", required=True, help="Shop domain to connect as")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--wav", help="WAV file to stream as microphone audio")
    source.add_argument("--text", action="append", help="Text message to send (repeatable)")
    parser.add_argument("--output", default="reply.mp3", help="Where to write the returned audio")
    parser.add_argument("--name", help="Customer name to send with customer.info")
    parser.add_argument("--email", help="Customer email to send with customer.info")
    parser.add_argument("--rating", type=int, choices=range(1, 6), help="Rate the conversation before leaving")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for each reply")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args()


async def wait_for_reply(done: asyncio.Event, timeout: float) -> None:
    try:
        await asyncio.wait_for(done.wait(), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"No complete reply within {timeout}s")
    done.clear()


async def run_client(args) -> int:
    client = VoiceRelayClient(args.url, args.shop)
    if not await client.connect():
        return 1
    print(f"Assistant: {client.greeting}")

    reply_done = asyncio.Event()

    async def on_transcript(event):
        if event.isFinal:
            print(f"You said: {event.text}")

    async def on_text(event):
        print(f"Assistant: {event.text}")

    async def on_complete(event):
        logger.info(f"Reply audio complete: {event.chunks} chunk(s), {event.bytes} bytes")
        reply_done.set()

    async def on_error(event):
        print(f"Error: {event.message}")
        reply_done.set()

    client.on("transcript.update", on_transcript)
    client.on("text.response", on_text)
    client.on("audio.complete", on_complete)
    client.on("error", on_error)

    listener = asyncio.create_task(client.listen())

    if args.name and args.email:
        await client.send_customer_info(args.name, args.email)

    if args.wav:
        frames = await client.send_audio(load_wav_as_pcm16(args.wav))
        logger.info(f"Streamed {frames} frame(s) from {args.wav}")
        await wait_for_reply(reply_done, args.timeout)
    else:
        lines = args.text
        if not lines:
            lines = [line.strip() for line in sys.stdin if line.strip()]
        for line in lines:
            print(f"You: {line}")
            await client.send_text(line)
            await wait_for_reply(reply_done, args.timeout)

    if args.rating:
        await client.send_rating(args.rating)

    await client.end_session()
    await listener

    if len(client.playback):
        client.playback.write(args.output)
        print(f"Saved reply audio to {args.output}")
    return 0


if __name__ == "__main__":
    arguments = parse_args()
    configure_logging(arguments.log_level)
    sys.exit(asyncio.run(run_client(arguments)))
