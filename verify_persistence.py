"""
Restart persistence check.

Starts the API, registers an account with an opening balance and posts a
voucher, restarts the server, then checks the voucher, the balances and the
trial balance survived.
"""

import time
import subprocess
import httpx
import sys
import os
import signal

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"
SERVER_CMD = [sys.executable, "-m", "uvicorn", "travel_ledger.app.main:app", "--host", "127.0.0.1", "--port", "8000"]


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for i in range(retries):
        try:
            resp = httpx.get(url)
            if resp.status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.TransportError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def api(path):
    return f"{BASE_URL}{API_PREFIX}{path}"


def run_verification():
    # 1. Start Server (First Run)
    print("\n--- [Step 1] Starting Server (Initial) ---")
    proc = subprocess.Popen(
        SERVER_CMD,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env={**os.environ, "DB_ECHO": "True"}  # Enable echo to see SQL
    )

    try:
        if not wait_for_server():
            server_logs = proc.communicate(timeout=2)
            print("Server Stdout:", server_logs[0].decode())
            print("Server Stderr:", server_logs[1].decode())
            raise RuntimeError("Server start failed")

        # 2. Register parties and post a voucher
        print("\n--- [Step 2] Posting Voucher (Persistence Test) ---")
        customer = httpx.post(api("/accounts"), json={
            "name": "Persistence Customer", "type": "CUSTOMER", "opening_balance": "1000",
        })
        vendor = httpx.post(api("/accounts"), json={"name": "Persistence Vendor", "type": "VENDOR"})
        if customer.status_code != 201 or vendor.status_code != 201:
            print(f"❌ Account Registration Failed: {customer.text} {vendor.text}")
            raise RuntimeError("Registration failed")

        resp = httpx.post(api("/vouchers"), json={
            "type": "TK",
            "customer_id": customer.json()["id"],
            "vendor_id": vendor.json()["id"],
            "details": {"airline": "PIA", "sector": "ISB-JED", "amount": "42000"},
        })
        if resp.status_code != 201:
            print(f"❌ Posting Failed: {resp.status_code} {resp.text}")
            raise RuntimeError("Posting failed")
        voucher = resp.json()
        print(f"✅ Posted {voucher['voucher_num']}")

    finally:
        print("\n--- [Step 3] Stopping Server ---")
        proc.send_signal(signal.SIGTERM)
        proc.wait()

    time.sleep(2)  # Wait for port release

    # 3. Restart Server
    print("\n--- [Step 4] Restarting Server (Verification) ---")
    proc2 = subprocess.Popen(SERVER_CMD, stdout=subprocess.PIPE, stderr=subprocess.PIPE)

    try:
        if not wait_for_server():
            raise RuntimeError("Server restart failed")

        # 4. Voucher and balances
        print("\n--- [Step 5] Reading Voucher (Post-Restart) ---")
        resp = httpx.get(api(f"/vouchers/{voucher['id']}"))
        if resp.status_code != 200 or len(resp.json()["entries"]) != 2:
            print(f"❌ Voucher Missing (Persistence Issue?): {resp.status_code} {resp.text}")
            raise RuntimeError("Voucher lost after restart")
        print("✅ Voucher Persisted")

        resp = httpx.get(api(f"/accounts/{customer.json()['id']}"))
        print(f"✅ Customer balance: {resp.json()['balance']}")

        # 5. Trial balance
        print("\n--- [Step 6] Verifying Trial Balance ---")
        report = httpx.get(api("/reports/trial-balance")).json()
        if report["integrity_alarm"]:
            print(f"❌ {report['integrity_alarm']['message']}")
            raise RuntimeError("Ledger out of balance after restart")
        print(f"✅ Debit {report['total_debit']} == Credit {report['total_credit']}")

    finally:
        print("\n--- [Step 7] Stopping Server ---")
        proc2.send_signal(signal.SIGTERM)
        proc2.wait()


if __name__ == "__main__":
    run_verification()
