#!/usr/bin/env python3
"""
Command-line entry point for kube-sherlock.

Ask questions about your Kubernetes cluster, troubleshoot error messages,
dump resources, or serve the HTTP API for the web frontend.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from kube_sherlock import errors
from kube_sherlock.config import configure_logging, load_settings
from kube_sherlock.context import AppContext, build_context

logger = logging.getLogger(__name__)

DEFAULT_GATHER_KINDS = ["pods", "deployments", "services", "events"]


class KubernetesChat:
    """Interactive question loop. Every line is answered on its own."""

    def __init__(self, context: AppContext):
        self.context = context

    def print_help(self):
        print("""
💬 Kubernetes Chat Commands:
   • Ask any question about your cluster: "What pods are running?"
   • Check a namespace: "How healthy are the deployments in kube-system?"
   • Read logs: "Show the last 50 log lines of pod api-7f9c in prod"

🔧 Special Commands:
   • /help - Show this help
   • /tools - List the cluster tools the assistant can use
   • /quit or /exit - Exit the chat
        """)

    def print_tools(self):
        print("\n🧰 Available tools:")
        for tool in sorted(self.context.catalog.list_tools(), key=lambda t: t.name):
            required = f" (requires {', '.join(tool.required)})" if tool.required else ""
            print(f"   • {tool.name}: {tool.description}{required}")
        print()

    async def handle_query(self, user_input: str) -> str:
        result = await self.context.orchestrator.query(user_input)
        if result.used_tool:
            return f"[used {result.tool_used}]\n{result.response}"
        return result.response

    async def run_interactive(self):
        print("\n Chat with your cluster")
        print("💬 Ask me anything about your Kubernetes cluster.")
        print("Type '/help' for commands or '/quit' to exit.\n")

        while True:
            try:
                user_input = input("🤖 You: ").strip()

                if not user_input:
                    continue

                command = user_input.lower()
                if command in ['/quit', '/exit']:
                    print("👋")
                    break
                elif command == '/help':
                    self.print_help()
                    continue
                elif command == '/tools':
                    self.print_tools()
                    continue

                print("🔍 Thinking...")
                response = await self.handle_query(user_input)
                print(f"\n🤖 Assistant: {response}\n")

            except (KeyboardInterrupt, EOFError):
                print("\n👋 Chat interrupted. Goodbye!")
                break
            except errors.ModelUnavailableError as e:
                print(f"❌ Model unavailable: {e}")


def _read_error_message(args: argparse.Namespace) -> str:
    if args.error_message:
        return args.error_message
    if not sys.stdin.isatty():
        print("Reading error message from stdin...", file=sys.stderr)
        return sys.stdin.read().strip()
    return ""


async def run_analyze(context: AppContext, args: argparse.Namespace) -> int:
    error_message = _read_error_message(args)
    if not error_message:
        print("Error: No error message provided", file=sys.stderr)
        return 1

    print("🔍 Kube Sherlock Analysis")
    print("=" * 25)
    print(f"Error: {error_message}\n")

    if args.verbose_output:
        print("📋 Starting AI analysis...")

    try:
        troubleshoot = await context.analysis.troubleshoot(error_message)
        suggestion = await context.analysis.suggest_resources(error_message)
    except (errors.ModelUnavailableError, errors.ModelResponseError) as e:
        print(f"Error analyzing error message: {e}", file=sys.stderr)
        return 1

    resource_context = ""
    if args.gather_resources:
        if args.verbose_output:
            print("📦 Gathering Kubernetes resources...")
        gatherer = context.gatherer
        if gatherer is None:
            print("Warning: Failed to connect to Kubernetes cluster", file=sys.stderr)
        else:
            result = await gatherer.gather(args.resource_types, args.namespace, args.label_selector)
            try:
                resource_context = await context.analysis.summarize(
                    json.dumps(result.to_dict(), indent=2, default=str)
                )
            except (errors.ModelUnavailableError, errors.ModelResponseError) as e:
                print(f"Warning: Failed to summarize resource data: {e}", file=sys.stderr)

    print("💡 Potential Causes:")
    print("-" * 20)
    for i, cause in enumerate(troubleshoot.potential_causes, 1):
        print(f"{i}. {cause}")

    print("\n🔧 Suggested Solutions:")
    print("-" * 23)
    for i, solution in enumerate(troubleshoot.suggested_solutions, 1):
        print(f"{i}. {solution}")

    print("\n📋 Recommended Resources to Check:")
    print("-" * 37)
    print(f"Reasoning: {suggestion.reasoning}\n")
    for i, resource in enumerate(suggestion.suggested_resources, 1):
        print(f"{i}. {resource}")

    if resource_context:
        print("\n📊 Current Cluster Context:")
        print("-" * 28)
        print(resource_context)

    if args.verbose_output:
        print("\n✅ Analysis complete!")
    return 0


async def run_query(context: AppContext, args: argparse.Namespace) -> int:
    try:
        result = await context.orchestrator.query(args.text)
    except errors.RequestValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except errors.ModelUnavailableError as e:
        print(f"Error: failed to process query: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        if result.used_tool:
            print(f"🧰 Tool used: {result.tool_used}\n")
        print(result.response)
        if result.error:
            print(f"\n⚠️  {result.error}", file=sys.stderr)
    return 0


async def run_gather(context: AppContext, args: argparse.Namespace) -> int:
    if context.gatherer is None:
        print("Error: Kubernetes cluster is not reachable", file=sys.stderr)
        return 1
    result = await context.gatherer.gather(args.kinds, args.namespace, args.label_selector)
    print(json.dumps(result.to_dict(), indent=2, default=str))
    return 0


async def run_chat(context: AppContext, args: argparse.Namespace) -> int:
    await KubernetesChat(context).run_interactive()
    return 0


def run_server(context: AppContext, args: argparse.Namespace) -> int:
    import uvicorn

    from kube_sherlock.api import create_app

    settings = context.settings
    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        create_app(context),
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.verbose else "info",
    )
    logger.info("Server exited")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kube-sherlock",
        description="AI-powered Kubernetes troubleshooting assistant",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  kube-sherlock query "What is the health of my pods in default namespace?"
  kube-sherlock analyze "ImagePullBackOff"
  kubectl logs pod/failing-pod | kube-sherlock analyze
  kube-sherlock analyze -g -n default "CrashLoopBackOff"
  kube-sherlock gather pods events -n prod
  kube-sherlock server --port 8080
        """,
    )
    parser.add_argument("--config", help="config file (default is $HOME/.kube-sherlock.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="verbose output")
    parser.add_argument("--api-key", help="model provider API key (OpenRouter)")
    parser.add_argument("--model", help="model slug to use")
    subparsers = parser.add_subparsers(dest="command", required=True)

    server = subparsers.add_parser("server", help="Start the HTTP API server")
    server.add_argument("-p", "--port", type=int, help="Port to run the server on (default: 8080)")
    server.add_argument("--host", help="Host to bind the server to (default: localhost)")

    analyze = subparsers.add_parser("analyze", help="Analyze an error message and suggest fixes")
    analyze.add_argument("error_message", nargs="?", default="", help="error message (or pipe via stdin)")
    analyze.add_argument("-g", "--gather-resources", action="store_true",
                         help="Gather related Kubernetes resources for additional context")
    analyze.add_argument("-n", "--namespace", default="default",
                         help="Kubernetes namespace to gather resources from")
    analyze.add_argument("--resource-types", nargs="+", default=DEFAULT_GATHER_KINDS,
                         help="Types of resources to gather")
    analyze.add_argument("--label-selector", default="", help="Label selector for filtering resources")
    analyze.add_argument("-V", "--verbose-output", action="store_true", help="Show detailed analysis steps")

    query = subparsers.add_parser("query", help="Ask one question about the cluster")
    query.add_argument("text", help="question to ask")
    query.add_argument("--json", action="store_true", help="print the raw response object")

    gather = subparsers.add_parser("gather", help="Dump Kubernetes resources as JSON")
    gather.add_argument("kinds", nargs="+", help="resource kinds, e.g. pods deployments events")
    gather.add_argument("-n", "--namespace", default="default", help="Kubernetes namespace")
    gather.add_argument("-l", "--label-selector", default="", help="Label selector")

    subparsers.add_parser("chat", help="Interactive chat with your cluster")
    return parser


COMMANDS = {
    "analyze": run_analyze,
    "query": run_query,
    "gather": run_gather,
    "chat": run_chat,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(
            args.config,
            api_key=args.api_key,
            model=args.model,
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            verbose=args.verbose,
        )
        # analyze only connects to the cluster when asked to gather
        connect_cluster = args.command != "analyze" or args.gather_resources
        context = asyncio.run(build_context(settings, connect_cluster=connect_cluster))
    except (RuntimeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "server":
        return run_server(context, args)
    return asyncio.run(COMMANDS[args.command](context, args))


if __name__ == "__main__":
    sys.exit(main())
