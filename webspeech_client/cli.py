#!/usr/bin/env python3
"""Command-line front end for a WebSpeech server."""

import asyncio
import difflib
import sys

from .api_client import ApiClient
from .config import ClientConfig, SUPPORTED_LANGUAGES
from .errors import RemoteFailure, TransportError, UploadError
from .jobs.capture import RecordingController
from .jobs.logger import setup_logging
from .jobs.manager import SpeechJobManager
from .jobs.models import Err, Notice, Ok, Pending, PollState, StsParams, TtsParams
from .validators import validate_subtitle_file

COMMANDS = ('tts', 'sts', 'record', 'voices', 'models', 'toggle', 'sts-status')

# Options that consume the next argument
VALUE_OPTIONS = {'--voice', '--speed', '--lang', '--model', '--url', '--srt', '--add'}


def print_usage():
    print("""
Usage: webspeech <command> [arguments] [options]

Commands:
    tts <text>            Synthesize text with a reference voice
    tts --srt <file>      Synthesize the text of an SRT subtitle file
    sts <audio-file>      Convert an audio file to a reference voice
    record <seconds>      Record from the microphone and add it as a reference voice
                          (with --voice: convert the recording to that voice)
    voices                List available reference voices
    voices --add <file>   Upload an audio file as a new reference voice
    models                List models and whether they are running
    toggle <name>         Start or stop a model
    sts-status            Show whether the speech-to-speech backend is running

Options:
    -h, --help          Show this help message
    --voice <str>       Reference voice (required for tts and sts)
    --speed <float>     Speech speed between 0.1 and 2.0 (default: 1.0)
    --lang <str>        Language code (default: en)
    --model <str>       Model name (default: default)
    --srt <file>        tts: read the text from an SRT subtitle file
    --add <file>        voices: upload a reference voice
    --url <str>         Server URL (default: $WEBSPEECH_BASE_URL or http://127.0.0.1:9988)
    --wait              sts-status: keep checking until the backend is running
    --debug             Show detailed log output

Examples:
    webspeech tts "Hello world" --voice speaker.wav --lang en --speed 1.2
    webspeech sts input.wav --voice speaker.wav
    webspeech record 10 --voice speaker.wav
    webspeech voices --add my_voice.wav
    webspeech tts --srt episode.srt --voice speaker.wav
    webspeech toggle my-model
    """)


def get_valid_options():
    """Return a set of valid command line options"""
    return {'-h', '--help', '--wait', '--debug'} | VALUE_OPTIONS


def get_option(args, name, default=None):
    for i, arg in enumerate(args):
        if arg == name and i + 1 < len(args):
            return args[i + 1]
    return default


def get_positionals(args):
    positionals = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in VALUE_OPTIONS:
            i += 1
        elif not arg.startswith('-'):
            positionals.append(arg)
        i += 1
    return positionals


def find_unknown_options(args):
    valid_options = get_valid_options()
    unknown = []
    i = 0
    while i < len(args):
        arg = args[i]
        if arg in VALUE_OPTIONS:
            i += 1
        elif arg.startswith('-') and arg not in valid_options:
            unknown.append(arg)
        i += 1
    return unknown


def print_event(event):
    """Listener printing job events to the terminal."""
    if isinstance(event, Pending):
        print(f"\rProcessing... {event.elapsed}s", end='', flush=True)
    elif isinstance(event, Notice):
        print(f"Note: {event.message}")
    elif isinstance(event, Ok):
        print()
        if event.message:
            print(event.message)
    elif isinstance(event, Err):
        print(f"\nError: {event.message}")


def report_result(manager, event):
    if not isinstance(event, Ok):
        return 1
    data = event.data
    name = data.get('name') if isinstance(data, dict) else data
    if name:
        print(f"Created {name}")
        url = manager.result_url(str(name))
        if url:
            print(url)
    return 0


def load_subtitle_text(path):
    """
    Read an SRT subtitle file as synthesis text.

    Raises:
        ValueError: If the file is not an SRT file
        OSError: If the file cannot be read
    """
    checked = validate_subtitle_file(path)
    if not checked.valid:
        raise ValueError(checked.message)
    with open(path, 'r', encoding='utf-8-sig') as f:
        return f.read()


async def run_tts(manager, args):
    positionals = get_positionals(args)
    srt_path = get_option(args, '--srt')
    if srt_path:
        try:
            text = load_subtitle_text(srt_path)
        except (ValueError, OSError) as e:
            print(f"Error: {e}")
            return 1
    elif len(positionals) >= 2:
        text = positionals[1]
    else:
        print("Error: tts needs the text to synthesize")
        return 1
    params = TtsParams(
        text=text,
        voice=get_option(args, '--voice', ''),
        language=get_option(args, '--lang', 'en'),
        speed=get_option(args, '--speed', manager.config.speed_default),
        model=get_option(args, '--model', '')
    )
    await manager.reconciler.refresh()
    event = await manager.generate_tts(params, print_event)
    return report_result(manager, event)


async def run_sts(manager, args):
    positionals = get_positionals(args)
    if len(positionals) < 2:
        print("Error: sts needs an audio file")
        return 1
    try:
        ref = await manager.upload_file(positionals[1])
    except (FileNotFoundError, UploadError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Uploaded as {ref}")
    event = await manager.generate_sts(StsParams(voice=get_option(args, '--voice', '')), print_event)
    return report_result(manager, event)


async def run_record(manager, args):
    positionals = get_positionals(args)
    try:
        seconds = int(positionals[1]) if len(positionals) > 1 else manager.config.recording_max_seconds
    except ValueError:
        print("Error: Recording length must be a whole number of seconds")
        return 1

    from .recorder import SoundDeviceRecorder

    loop = asyncio.get_running_loop()
    finished = loop.create_future()

    def on_complete(audio):
        if not finished.done():
            finished.set_result(audio)

    controller = RecordingController(
        SoundDeviceRecorder(),
        scheduler=manager.scheduler,
        config=manager.config,
        on_tick=lambda s: print(f"\rRecording... {s}/{seconds}s", end='', flush=True),
        on_complete=on_complete
    )
    try:
        controller.start(seconds)
    except Exception as e:
        print(f"Error: Could not open microphone: {e}")
        return 1
    try:
        while controller.is_recording():
            await asyncio.sleep(0.2)
    finally:
        controller.dispose()
    print()

    audio = finished.result() if finished.done() else None
    if audio is None:
        print("Error: Nothing was recorded")
        return 1

    voice = get_option(args, '--voice')
    if not voice:
        try:
            name = await manager.upload_voice(audio)
        except UploadError as e:
            print(f"Error: {e}")
            return 1
        print(f"Added voice {name} ({audio.duration_seconds:.1f}s)")
        return 0

    try:
        ref = await manager.upload_recording(audio)
    except UploadError as e:
        print(f"Error: {e}")
        return 1
    print(f"Uploaded as {ref} ({audio.duration_seconds:.1f}s)")
    event = await manager.generate_sts(StsParams(voice=voice), print_event)
    return report_result(manager, event)


async def run_voices(manager, args):
    voices = await manager.load_voices()
    new_voice = get_option(args, '--add')
    if new_voice:
        try:
            name = await manager.upload_voice(new_voice)
        except (FileNotFoundError, UploadError) as e:
            print(f"Error: {e}")
            return 1
        print(f"Added voice {name}")
        voices = manager.voices
    if not voices:
        print("No voices available")
        return 1
    print("\nAvailable voices:")
    for idx, voice in enumerate(voices, 1):
        print(f"    {idx:2d}. {voice}")
    return 0


async def run_models(manager, args):
    if not await manager.reconciler.refresh():
        return 1
    statuses = manager.reconciler.statuses()
    if not statuses:
        print("No models found")
        return 0
    for status in statuses:
        print(f"    {status.format_display_name()}")
    return 0


async def run_toggle(manager, args):
    positionals = get_positionals(args)
    if len(positionals) < 2:
        print("Error: toggle needs a model name")
        return 1
    name = positionals[1]
    if not await manager.reconciler.refresh():
        return 1
    running = await manager.toggle_model(name)
    if running is None:
        return 1
    print(f"{name} is now {'running' if running else 'stopped'}")
    return 0


async def run_sts_status(manager, args):
    if '--wait' not in args:
        try:
            status = await manager.sts.check_status()
        except (TransportError, RemoteFailure) as e:
            print(f"Error: {e}")
            return 1
        print("STS backend is running" if status.running else "STS backend is not running")
        return 0 if status.running else 1

    def on_status(is_running, message):
        print("STS backend is running" if is_running else f"Waiting: {message}")

    manager.on_sts_status = on_status
    manager.start_sts_status_check()
    poller = manager.sts.status_poller
    while poller.active:
        await asyncio.sleep(0.5)
    session = poller.session
    return 0 if session is not None and session.state == PollState.TERMINAL else 1


HANDLERS = {
    'tts': run_tts,
    'sts': run_sts,
    'record': run_record,
    'voices': run_voices,
    'models': run_models,
    'toggle': run_toggle,
    'sts-status': run_sts_status,
}


async def run_command(command, args, config):
    client = ApiClient(config)
    manager = SpeechJobManager(
        client,
        config,
        on_error=lambda message: print(f"Error: {message}")
    )
    try:
        return await HANDLERS[command](manager, args)
    finally:
        manager.dispose()
        client.close()


def main():
    """Main entry point for the webspeech CLI tool."""
    args = sys.argv[1:]

    unknown_options = find_unknown_options(args)
    if unknown_options:
        print("Error: Unknown option(s):", ", ".join(unknown_options))
        print("\nDid you mean one of these?")
        for unknown in unknown_options:
            similar = difflib.get_close_matches(unknown, get_valid_options(), n=3, cutoff=0.4)
            if similar:
                print(f"  {unknown} -> {', '.join(similar)}")
        print("\n")
        print_usage()
        sys.exit(1)

    if not args or '--help' in args or '-h' in args:
        print_usage()
        sys.exit(0)

    positionals = get_positionals(args)
    command = positionals[0] if positionals else None
    if command not in COMMANDS:
        print(f"Error: Unknown command: {command}")
        similar = difflib.get_close_matches(command or '', COMMANDS, n=3, cutoff=0.4)
        if similar:
            print(f"Did you mean: {', '.join(similar)}?")
        print_usage()
        sys.exit(1)

    lang = get_option(args, '--lang')
    if lang and lang.lower() not in SUPPORTED_LANGUAGES:
        print(f"Error: Unsupported language: {lang}")
        print("Supported languages:", ", ".join(SUPPORTED_LANGUAGES))
        sys.exit(1)

    config = ClientConfig.from_env()
    url = get_option(args, '--url')
    if url:
        config.base_url = url.rstrip('/')
    setup_logging('DEBUG' if '--debug' in args else config.log_level)

    try:
        exit_code = asyncio.run(run_command(command, args, config))
    except KeyboardInterrupt:
        print("\nCtrl+C detected, stopping...")
        sys.exit(0)
    sys.exit(exit_code)


if __name__ == '__main__':
    main()
