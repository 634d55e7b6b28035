"""
PocketLLM - Command-Line Entry Point

Subcommands:
    models              List the model catalogue and installed state
    load [MODEL]        Load a model (downloading it if needed)
    chat                Interactive streaming chat
    summarize FILE      Map-reduce summary of a document
"""

import argparse
import sys

from pocketllm.ai import GenerationEngine, ModelLifecycleManager, OllamaRuntime, PocketLLMError
from pocketllm.config import DEFAULT_SYSTEM_PROMPT, available_models, default_model, get_model_by_name
from pocketllm.conversation import Conversation, Role
from pocketllm.logging_config import close_debug_log, info
from pocketllm.summarization import SummarizationPipeline
from pocketllm.system_resources import fits_in_memory
from pocketllm.user_preferences import get_user_preferences


def _print_status(message: str):
    print(f"  {message}", file=sys.stderr)


def _resolve_model(lifecycle: ModelLifecycleManager, name: str = None):
    if name:
        return lifecycle.resolve(name)
    last_used = lifecycle.preferences.get_last_used_model()
    if last_used and get_model_by_name(last_used):
        return lifecycle.resolve(last_used)
    return default_model()


def cmd_models(args, lifecycle: ModelLifecycleManager) -> int:
    preferences = lifecycle.preferences
    default_id = default_model().id
    print(f"{'MODEL':<16} {'NAME':<12} {'SIZE':<8} {'INSTALLED':<10} FITS RAM")
    for model in available_models():
        marker = "*" if model.id == default_id else " "
        installed = "yes" if preferences.is_model_installed(model.id) else "no"
        fits = "yes" if fits_in_memory(model.size_gb) else "no"
        print(f"{marker}{model.id:<15} {model.name:<12} {model.size_label:<8} {installed:<10} {fits}")
    print(f"\nOffline mode: {'on' if preferences.force_offline_mode else 'off'}")
    return 0


def cmd_load(args, lifecycle: ModelLifecycleManager) -> int:
    model = _resolve_model(lifecycle, args.model)
    lifecycle.load(model)
    print(lifecycle.model_info)
    return 0


def cmd_chat(args, lifecycle: ModelLifecycleManager) -> int:
    engine = GenerationEngine(lifecycle)
    model = _resolve_model(lifecycle, args.model)
    conversation = Conversation()
    print(f"Chatting with {model.name}. Empty line or Ctrl-D to quit, Ctrl-C to stop a reply.")

    while True:
        try:
            prompt = input("\n> ").strip()
        except EOFError:
            break
        if not prompt:
            break

        conversation.add(Role.USER, prompt)
        stream = engine.generate_stream(model, conversation.snapshot(), args.system)
        try:
            for delta in stream:
                print(delta, end="", flush=True)
        except KeyboardInterrupt:
            stream.close()
        except PocketLLMError as e:
            print(e.explain(), end="")
        print()
        if engine.output:
            conversation.add(Role.ASSISTANT, engine.output)
        info(f"[CLI]{engine.stat}")
    return 0


def cmd_summarize(args, lifecycle: ModelLifecycleManager) -> int:
    engine = GenerationEngine(lifecycle)
    pipeline = SummarizationPipeline(engine, model=_resolve_model(lifecycle, args.model))

    def report(state, progress):
        _print_status(f"[{int(progress * 100):3d}%] {state}")

    try:
        result = pipeline.process_document(args.file, state_callback=report)
    except KeyboardInterrupt:
        pipeline.cancel_processing()
        return 130

    if result.error_message:
        print(f"Error: {result.error_message}", file=sys.stderr)
        return 1

    print(f"\n{result.title}\n{'=' * len(result.title)}\n")
    print(result.summary)
    _print_status(f"{result.chunk_count} chunks in {result.processing_time_seconds:.1f}s")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pocketllm",
        description="PocketLLM - local model chat and document summarization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pocketllm models
  pocketllm load "Core 3B"
  pocketllm chat --system "Answer in one sentence."
  pocketllm --offline summarize report.pdf

  # Debug mode (verbose logging)
  DEBUG=true pocketllm chat
        """
    )
    parser.add_argument(
        '--offline',
        action='store_true',
        help='Never download models; fail if no local copy exists'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('models', help='List available models')

    load_parser = subparsers.add_parser('load', help='Load (and if needed download) a model')
    load_parser.add_argument('model', nargs='?', help='Model id or display name')

    chat_parser = subparsers.add_parser('chat', help='Interactive streaming chat')
    chat_parser.add_argument('--model', help='Model id or display name')
    chat_parser.add_argument('--system', default=DEFAULT_SYSTEM_PROMPT, help='System prompt')

    summarize_parser = subparsers.add_parser('summarize', help='Summarize a document (TXT, MD, RTF, PDF)')
    summarize_parser.add_argument('file', help='Document to summarize')
    summarize_parser.add_argument('--model', help='Model id or display name')

    return parser


COMMANDS = {
    'models': cmd_models,
    'load': cmd_load,
    'chat': cmd_chat,
    'summarize': cmd_summarize,
}


def main(argv=None) -> int:
    """Main entry point for the PocketLLM CLI."""
    args = build_parser().parse_args(argv)

    preferences = get_user_preferences()
    previous_offline = preferences.force_offline_mode
    if args.offline:
        preferences.force_offline_mode = True

    lifecycle = ModelLifecycleManager(
        OllamaRuntime(),
        preferences=preferences,
        status_callback=_print_status,
    )
    try:
        return COMMANDS[args.command](args, lifecycle)
    except PocketLLMError as e:
        print(f"Error: {e.explain()}", file=sys.stderr)
        return 1
    finally:
        if args.offline:
            preferences.force_offline_mode = previous_offline
        close_debug_log()


if __name__ == "__main__":
    sys.exit(main())
