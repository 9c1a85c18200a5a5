"""Manual concurrency stress test for request approval.

Usage:
    python scripts/simulate_concurrent_ops.py

Prerequisites:
    - API server running on localhost:8000
    - Database populated or empty (stock and requests are created here)
"""

import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone

import httpx

BASE_URL = "http://localhost:8000/api"


def add_stock(blood_type: str, quantities: list[int]) -> list[dict]:
    """Create one batch per quantity, each expiring a day later than the last."""
    now = datetime.now(timezone.utc)
    batches = []
    for offset, quantity in enumerate(quantities, start=1):
        response = httpx.post(
            f"{BASE_URL}/inventory/",
            json={
                "blood_type": blood_type,
                "quantity": quantity,
                "collected_at": now.isoformat(),
                "expiry_date": (now + timedelta(days=offset)).isoformat(),
            },
            timeout=10,
        )
        response.raise_for_status()
        batches.append(response.json()["data"])
    return batches


def submit_request(blood_type: str, quantity: int, worker_id: int) -> dict:
    """Submit a pending request."""
    response = httpx.post(
        f"{BASE_URL}/requests/",
        json={
            "patient_name": f"Simulated Patient {worker_id:04d}",
            "hospital": "Simulation General",
            "blood_type": blood_type,
            "quantity": quantity,
            "priority": "High",
        },
        timeout=10,
    )
    response.raise_for_status()
    return response.json()["data"]


def approve(request_id: int, worker_id: int) -> dict:
    """Attempt to approve a request."""
    try:
        response = httpx.put(
            f"{BASE_URL}/requests/{request_id}/approve",
            json={"processed_by": f"SIM-{worker_id:04d}"},
            timeout=30,
        )
        return {
            "worker_id": worker_id,
            "status_code": response.status_code,
            "success": response.status_code == 200,
        }
    except Exception as e:
        return {"worker_id": worker_id, "status_code": -1, "error": str(e), "success": False}


def available_units(blood_type: str) -> int:
    response = httpx.get(
        f"{BASE_URL}/inventory/availability",
        params={"blood_type": blood_type},
        timeout=10,
    )
    response.raise_for_status()
    return response.json()["data"][0]["available"]


def run_simulation(
    blood_type: str = "O-",
    stock: tuple[int, ...] = (3, 4, 5),
    qty_per_request: int = 2,
    num_workers: int = 10,
) -> None:
    """Run concurrent approval simulation."""
    total_stock = sum(stock)
    print(f"\n{'=' * 60}")
    print("Concurrent Approval Simulation")
    print(f"{'=' * 60}")
    print(f"Blood type: {blood_type}")
    print(f"Batches added: {list(stock)} (total {total_stock} units)")
    print(f"Units per request: {qty_per_request}")
    print(f"Number of workers: {num_workers}")
    print(f"{'=' * 60}\n")

    before = available_units(blood_type)
    add_stock(blood_type, list(stock))
    requests = [submit_request(blood_type, qty_per_request, i) for i in range(num_workers)]
    expected_max = (before + total_stock) // qty_per_request

    print(f"Launching {num_workers} concurrent approvals...")
    start_time = time.time()
    results = []

    with ThreadPoolExecutor(max_workers=num_workers) as executor:
        futures = {
            executor.submit(approve, request["id"], i): i
            for i, request in enumerate(requests)
        }
        for future in as_completed(futures):
            results.append(future.result())

    elapsed = time.time() - start_time

    successes = [r for r in results if r["success"]]
    rejected = [r for r in results if r.get("status_code") == 400]
    failures = [r for r in results if not r["success"] and r.get("status_code") != 400]

    print(f"\n{'=' * 60}")
    print(f"Results (completed in {elapsed:.2f}s):")
    print(f"  Approved: {len(successes)} (at most {expected_max} possible)")
    print(f"  Insufficient stock (400): {len(rejected)}")
    print(f"  Other failures: {len(failures)}")

    allocated = len(successes) * qty_per_request
    after = available_units(blood_type)
    print(f"\n  Units allocated: {allocated}")
    print(f"  Available before/after: {before + total_stock} -> {after}")
    integrity = after == before + total_stock - allocated and after >= 0
    print(f"  Integrity check: {'PASS' if integrity else 'FAIL'}")
    print(f"{'=' * 60}\n")


if __name__ == "__main__":
    try:
        httpx.get(f"{BASE_URL.replace('/api', '')}/health", timeout=5).raise_for_status()
    except Exception:
        print(f"ERROR: Cannot connect to API at {BASE_URL.replace('/api', '')}")
        print("Make sure the API server is running: uvicorn bloodbank.main:app --reload")
        sys.exit(1)

    run_simulation(blood_type="O-", stock=(3, 4, 5), qty_per_request=2, num_workers=10)
    run_simulation(blood_type="AB+", stock=(10, 10, 10), qty_per_request=3, num_workers=20)
