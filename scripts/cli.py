#!/usr/bin/env python3
"""Command-line interface for the Blood Bank Management API.

Usage examples:
    python scripts/cli.py stats
    python scripts/cli.py donors
    python scripts/cli.py add-donor --name "Jane Doe" --age 34 --blood-type O- \
        --phone 5550100200 --email jane@example.com --address "12 High Street, Springfield"
    python scripts/cli.py inventory --blood-type A+ --status available
    python scripts/cli.py add-unit --blood-type A+ --quantity 4 --donor-id 1
    python scripts/cli.py availability
    python scripts/cli.py sweep
    python scripts/cli.py requests --status pending
    python scripts/cli.py submit --patient "John Roe" --hospital "General" \
        --blood-type A+ --quantity 2 --priority High
    python scripts/cli.py approve 7 --processed-by "Dr. Lee" [--reserve]
    python scripts/cli.py reject 7
    python scripts/cli.py cancel 7
"""

import argparse
import json
import sys
from datetime import datetime, timezone

import httpx

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0

BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


def format_output(data: object) -> None:
    """Pretty-print a JSON-serialisable object."""
    print(json.dumps(data, indent=2, default=str))


def handle_response(response: httpx.Response) -> dict:
    """Return the envelope's data or exit with the envelope's error message."""
    try:
        body = response.json()
    except Exception:
        body = {"success": False, "error": response.text}

    if response.status_code >= 400 or not body.get("success", False):
        print(
            f"Error {response.status_code}: {body.get('error', 'Unknown error')}",
            file=sys.stderr,
        )
        for detail in body.get("details") or []:
            print(f"  - {detail}", file=sys.stderr)
        sys.exit(1)

    if body.get("message"):
        print(body["message"], file=sys.stderr)
    return body.get("data")


def cmd_stats(args: argparse.Namespace, client: httpx.Client) -> None:
    """Show dashboard statistics."""
    format_output(handle_response(client.get("/api/stats")))


def cmd_donors(args: argparse.Namespace, client: httpx.Client) -> None:
    """List active donors."""
    params = {"skip": args.skip, "limit": args.limit}
    format_output(handle_response(client.get("/api/donors/", params=params)))


def cmd_add_donor(args: argparse.Namespace, client: httpx.Client) -> None:
    """Register a donor."""
    data = {
        "name": args.name,
        "age": args.age,
        "blood_type": args.blood_type,
        "phone": args.phone,
        "email": args.email,
        "address": args.address,
    }
    format_output(handle_response(client.post("/api/donors/", json=data)))


def cmd_remove_donor(args: argparse.Namespace, client: httpx.Client) -> None:
    """Deactivate a donor."""
    format_output(handle_response(client.delete(f"/api/donors/{args.id}")))


def cmd_inventory(args: argparse.Namespace, client: httpx.Client) -> None:
    """List inventory batches."""
    params: dict[str, object] = {"skip": args.skip, "limit": args.limit}
    if args.blood_type:
        params["blood_type"] = args.blood_type
    if args.status:
        params["status"] = args.status
    format_output(handle_response(client.get("/api/inventory/", params=params)))


def cmd_add_unit(args: argparse.Namespace, client: httpx.Client) -> None:
    """Record a donation intake."""
    data: dict[str, object] = {
        "blood_type": args.blood_type,
        "quantity": args.quantity,
        "collected_at": args.collected_at or datetime.now(timezone.utc).isoformat(),
    }
    if args.expiry_date:
        data["expiry_date"] = args.expiry_date
    if args.donor_id:
        data["donor_id"] = args.donor_id
    format_output(handle_response(client.post("/api/inventory/", json=data)))


def cmd_remove_unit(args: argparse.Namespace, client: httpx.Client) -> None:
    """Delete an inventory batch."""
    handle_response(client.delete(f"/api/inventory/{args.id}"))


def cmd_availability(args: argparse.Namespace, client: httpx.Client) -> None:
    """Show available units per blood type."""
    params = {"blood_type": args.blood_type} if args.blood_type else None
    format_output(handle_response(client.get("/api/inventory/availability", params=params)))


def cmd_summary(args: argparse.Namespace, client: httpx.Client) -> None:
    """Show units by blood type and status."""
    format_output(handle_response(client.get("/api/inventory/summary")))


def cmd_sweep(args: argparse.Namespace, client: httpx.Client) -> None:
    """Mark expired units as expired."""
    format_output(handle_response(client.post("/api/inventory/sweep")))


def cmd_requests(args: argparse.Namespace, client: httpx.Client) -> None:
    """List blood requests."""
    params: dict[str, object] = {"skip": args.skip, "limit": args.limit}
    if args.status:
        params["status"] = args.status
    format_output(handle_response(client.get("/api/requests/", params=params)))


def cmd_submit(args: argparse.Namespace, client: httpx.Client) -> None:
    """Submit a blood request."""
    data = {
        "patient_name": args.patient,
        "hospital": args.hospital,
        "blood_type": args.blood_type,
        "quantity": args.quantity,
        "priority": args.priority,
    }
    format_output(handle_response(client.post("/api/requests/", json=data)))


def cmd_approve(args: argparse.Namespace, client: httpx.Client) -> None:
    """Approve a pending request, allocating inventory."""
    data: dict[str, object] = {"reserve": args.reserve}
    if args.processed_by:
        data["processed_by"] = args.processed_by
    format_output(handle_response(client.put(f"/api/requests/{args.id}/approve", json=data)))


def _close_request(args: argparse.Namespace, client: httpx.Client, status: str) -> None:
    data: dict[str, object] = {"status": status}
    if args.processed_by:
        data["processed_by"] = args.processed_by
    format_output(handle_response(client.put(f"/api/requests/{args.id}", json=data)))


def cmd_reject(args: argparse.Namespace, client: httpx.Client) -> None:
    """Reject a pending request."""
    _close_request(args, client, "rejected")


def cmd_cancel(args: argparse.Namespace, client: httpx.Client) -> None:
    """Cancel a pending request."""
    _close_request(args, client, "cancelled")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cli.py",
        description="Blood Bank Management CLI",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"API base URL (default: {DEFAULT_BASE_URL})",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("stats", help="Show dashboard statistics")

    # --- donors ---
    p_donors = sub.add_parser("donors", help="List active donors")
    p_donors.add_argument("--skip", type=int, default=0, help="Pagination offset")
    p_donors.add_argument("--limit", type=int, default=100, help="Page size")

    p_add_donor = sub.add_parser("add-donor", help="Register a donor")
    p_add_donor.add_argument("--name", required=True)
    p_add_donor.add_argument("--age", type=int, required=True, help="18-65")
    p_add_donor.add_argument("--blood-type", required=True, choices=BLOOD_TYPES)
    p_add_donor.add_argument("--phone", required=True)
    p_add_donor.add_argument("--email", required=True)
    p_add_donor.add_argument("--address", required=True)

    p_remove_donor = sub.add_parser("remove-donor", help="Deactivate a donor")
    p_remove_donor.add_argument("id", type=int, help="Donor ID")

    # --- inventory ---
    p_inventory = sub.add_parser("inventory", help="List inventory batches")
    p_inventory.add_argument("--skip", type=int, default=0, help="Pagination offset")
    p_inventory.add_argument("--limit", type=int, default=100, help="Page size")
    p_inventory.add_argument("--blood-type", choices=BLOOD_TYPES)
    p_inventory.add_argument(
        "--status", choices=["available", "reserved", "used", "expired"]
    )

    p_add_unit = sub.add_parser("add-unit", help="Record a donation intake")
    p_add_unit.add_argument("--blood-type", required=True, choices=BLOOD_TYPES)
    p_add_unit.add_argument("--quantity", type=int, required=True, help="Number of units")
    p_add_unit.add_argument("--collected-at", help="ISO 8601 timestamp (default: now)")
    p_add_unit.add_argument("--expiry-date", help="ISO 8601 timestamp (default: shelf life)")
    p_add_unit.add_argument("--donor-id", type=int, help="Donor ID")

    p_remove_unit = sub.add_parser("remove-unit", help="Delete an inventory batch")
    p_remove_unit.add_argument("id", type=int, help="Batch ID")

    p_avail = sub.add_parser("availability", help="Available units per blood type")
    p_avail.add_argument("--blood-type", choices=BLOOD_TYPES)

    sub.add_parser("summary", help="Units by blood type and status")
    sub.add_parser("sweep", help="Mark expired units as expired")

    # --- requests ---
    p_requests = sub.add_parser("requests", help="List blood requests")
    p_requests.add_argument("--skip", type=int, default=0, help="Pagination offset")
    p_requests.add_argument("--limit", type=int, default=100, help="Page size")
    p_requests.add_argument(
        "--status", choices=["pending", "fulfilled", "rejected", "cancelled"]
    )

    p_submit = sub.add_parser("submit", help="Submit a blood request")
    p_submit.add_argument("--patient", required=True, help="Patient name")
    p_submit.add_argument("--hospital", required=True)
    p_submit.add_argument("--blood-type", required=True, choices=BLOOD_TYPES)
    p_submit.add_argument("--quantity", type=int, required=True, help="Units required")
    p_submit.add_argument(
        "--priority", default="Medium", choices=["Low", "Medium", "High", "Critical"]
    )

    for name, help_text in (
        ("approve", "Approve a pending request"),
        ("reject", "Reject a pending request"),
        ("cancel", "Cancel a pending request"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("id", type=int, help="Request ID")
        p.add_argument("--processed-by", help="Operator name")
        if name == "approve":
            p.add_argument(
                "--reserve",
                action="store_true",
                help="Reserve the units instead of marking them used",
            )

    return parser


def main() -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    dispatch = {
        "stats": cmd_stats,
        "donors": cmd_donors,
        "add-donor": cmd_add_donor,
        "remove-donor": cmd_remove_donor,
        "inventory": cmd_inventory,
        "add-unit": cmd_add_unit,
        "remove-unit": cmd_remove_unit,
        "availability": cmd_availability,
        "summary": cmd_summary,
        "sweep": cmd_sweep,
        "requests": cmd_requests,
        "submit": cmd_submit,
        "approve": cmd_approve,
        "reject": cmd_reject,
        "cancel": cmd_cancel,
    }

    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    with httpx.Client(base_url=args.base_url, timeout=DEFAULT_TIMEOUT) as client:
        handler(args, client)


if __name__ == "__main__":
    main()
