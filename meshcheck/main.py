"""Entry point for the meshcheck CLI."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta

import uvicorn
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from meshcheck.config import settings
from meshcheck.healthcheck import CheckResult, HealthChecker, HealthCheckOptions, standard_checks
from meshcheck.healthcheck.runner import CheckRunner, utcnow

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)

OK_MARK = "[green]√[/green]"
FAIL_MARK = "[red]×[/red]"


class ConsoleObserver:
    """Prints check results grouped under a header per category."""

    def __init__(self, out: Console) -> None:
        self.out = out
        self._last_category = ""

    def __call__(self, result: CheckResult) -> None:
        if result.category != self._last_category:
            if self._last_category:
                self.out.print()
            self.out.print(f"[bold]{result.category}[/bold]")
            self.out.print("-" * len(result.category))
            self._last_category = result.category

        if result.retry:
            self.out.print(f"[yellow]--[/yellow] {result.description} -- retrying: {escape(str(result.err))}")
        elif result.err is not None:
            self.out.print(f"{FAIL_MARK} {result.description}")
            self.out.print(f"    {result.err}", style="red", markup=False)
        else:
            self.out.print(f"{OK_MARK} {result.description}")


def build_options(args: argparse.Namespace) -> HealthCheckOptions:
    return HealthCheckOptions(
        control_plane_namespace=args.linkerd_namespace,
        data_plane_namespace=args.namespace,
        kubeconfig=args.kubeconfig,
        kube_context=args.context,
        api_addr=args.api_addr,
        version_override=args.expected_version,
        retry_deadline=utcnow() + timedelta(seconds=args.wait),
        should_check_kube_version=True,
        should_check_control_plane_version=not args.pre,
        should_check_data_plane_version=args.proxy and not args.pre,
        single_namespace=args.single_namespace,
        self_check_timeout=settings.self_check_timeout_seconds,
    )


def run_check(args: argparse.Namespace) -> bool:
    """Run the requested checks, printing each result as it arrives."""
    checker = HealthChecker(
        standard_checks(pre_install=args.pre, data_plane=args.proxy),
        build_options(args),
        runner=CheckRunner(retry_window=settings.retry_window_seconds),
    )

    success = checker.run_checks(ConsoleObserver(console))

    console.print()
    if success:
        console.print(Panel("Status check results are √", style="bold green"))
    else:
        console.print(Panel("Status check results are ×", style="bold red"))
    return success


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting meshcheck API server", style="bold green"))
    uvicorn.run(
        "meshcheck.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Linkerd health checks")
    sub = parser.add_subparsers(dest="command")

    check = sub.add_parser("check", help="Check the cluster and control plane")
    check.add_argument("--pre", action="store_true",
                       help="Only run pre-installation checks")
    check.add_argument("--proxy", action="store_true",
                       help="Also check the data plane proxies")
    check.add_argument("-n", "--namespace", default="",
                       help="Namespace to use for --proxy checks (default: all namespaces)")
    check.add_argument("--wait", type=int, default=settings.check_wait_seconds,
                       help="Seconds to keep retrying pod readiness checks")
    check.add_argument("--expected-version", default="",
                       help="Compare against this version instead of looking up the latest")
    check.add_argument("--single-namespace", action="store_true",
                       help="Check Role/RoleBinding permissions instead of cluster-wide ones")
    check.add_argument("-l", "--linkerd-namespace", default=settings.control_plane_namespace,
                       help="Namespace of the control plane")
    check.add_argument("--api-addr", default=settings.api_addr,
                       help="Talk to the control plane API at this address directly")
    check.add_argument("--kubeconfig", default=settings.kubeconfig,
                       help="Path to the kubeconfig file")
    check.add_argument("--context", default=settings.kube_context,
                       help="Kubeconfig context to use")

    sub.add_parser("serve", help="Start the API server")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "check":
        sys.exit(0 if run_check(args) else 1)
    elif args.command == "serve":
        run_server()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
