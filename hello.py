import os

import requests

BASE_URL = os.environ.get("API_GATE_URL", "http://localhost:8080")
MASTER_API_KEY = os.environ["MASTER_API_KEY"]

# 1. Create API key (master key required)
create_key_response = requests.post(
    f"{BASE_URL}/api-keys",
    params={"api": MASTER_API_KEY},
    json={"name": "python-test-key"},
)
api_key = create_key_response.json()["key"]
print(f"Created API key: {api_key}")

# 2. Use API key on a protected endpoint
hello_response = requests.get(f"{BASE_URL}/hello", params={"api": api_key})
print(hello_response.status_code, hello_response.json())

# 3. Look at what was logged
stats_response = requests.get(
    f"{BASE_URL}/dashboard/stats", params={"api": MASTER_API_KEY}
)
print(stats_response.json())
