#!/usr/bin/env python3
"""
Diagnostic script to test relay connectivity.
Only uses read-only endpoints, so a pending manual command is left untouched.
"""
import sys
import json
import requests

def check_relay(base_url, timeout=3):
    """Test connection to a running relay."""
    print(f"\n{'='*60}")
    print(f"Testing relay at {base_url}")
    print(f"{'='*60}\n")

    # Test 1: basic connectivity
    print("1. Testing basic connectivity...")
    try:
        response = requests.get(f"{base_url}/", timeout=timeout)
        print(f"   ✓ Relay is reachable (status code: {response.status_code})")
    except requests.exceptions.Timeout:
        print(f"   ✗ TIMEOUT - Relay did not respond within {timeout} seconds")
        print("   → Check if the server is running")
        return False
    except requests.exceptions.ConnectionError:
        print("   ✗ CONNECTION ERROR - Cannot reach relay")
        print("   → Check network connection and bind address")
        return False

    # Test 2: latest reading
    print("\n2. Getting latest reading...")
    try:
        response = requests.get(f"{base_url}/api/latest", timeout=timeout)
        response.raise_for_status()
        latest = response.json()
        if latest is None:
            print("   ! No reading received from the device yet")
        else:
            print(f"   ✓ soil={latest['soil']} light={latest['light']} "
                  f"watering={latest['is_watering']} at {latest['updated_at']}")
    except (requests.exceptions.RequestException, ValueError) as e:
        print(f"   ✗ Error: {e}")
        return False

    # Test 3: command state
    print("\n3. Getting command state...")
    try:
        response = requests.get(f"{base_url}/api/status", timeout=timeout)
        response.raise_for_status()
        status = response.json()
        print(f"   Response: {json.dumps(status['command'], indent=2)}")
    except (requests.exceptions.RequestException, ValueError) as e:
        print(f"   ✗ Error: {e}")
        return False

    print(f"\n{'='*60}")
    print(f"✓ All checks passed! Relay at {base_url} is working correctly.")
    print(f"{'='*60}\n")
    return True


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else "http://127.0.0.1:3000"
    sys.exit(0 if check_relay(url.rstrip("/")) else 1)
