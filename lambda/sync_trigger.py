"""
AWS Lambda function to trigger a content sync via the API endpoint.

Deploy this to Lambda and schedule with EventBridge, or call it from the
content repository's deploy hook after new JSON files land.
"""

import json
import os
import urllib.error
import urllib.request
from typing import Any, Dict


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Trigger /sync/run-all on the API.

    Environment Variables:
        API_URL: The service base URL (e.g., https://xxx.awsapprunner.com)
        SYNC_TIMEOUT: Request timeout in seconds (default: 300)

    Event:
        {"dry_run": true} runs the sync without writing.
    """
    api_url = os.environ.get("API_URL")
    if not api_url:
        return {"statusCode": 500, "body": json.dumps({"error": "API_URL environment variable not set"})}

    timeout = int(os.environ.get("SYNC_TIMEOUT", "300"))
    dry_run = "true" if (event or {}).get("dry_run") else "false"

    endpoint = f"{api_url.rstrip('/')}/sync/run-all?dry_run={dry_run}"

    request = urllib.request.Request(endpoint, method="POST", headers={"Content-Type": "application/json", "User-Agent": "PsychIndexSyncTrigger/1.0"})

    try:
        print(f"Triggering sync at: {endpoint}")

        with urllib.request.urlopen(request, timeout=timeout) as response:
            result = json.loads(response.read().decode("utf-8"))

            print(f"Sync finished: synced={result.get('total_synced')} errors={result.get('total_errors')}")

            return {"statusCode": 200, "body": json.dumps({"success": result.get("success", False), "sync_result": result})}

    except urllib.error.HTTPError as e:
        error_body = e.read().decode("utf-8") if e.fp else str(e)
        print(f"Sync request failed with HTTP {e.code}: {error_body}")

        return {"statusCode": e.code, "body": json.dumps({"success": False, "error": f"HTTP {e.code}: {error_body}"})}

    except urllib.error.URLError as e:
        print(f"Sync request failed: {str(e)}")

        return {"statusCode": 500, "body": json.dumps({"success": False, "error": f"Connection error: {str(e)}"})}


# For local testing
if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        os.environ["API_URL"] = sys.argv[1]

    result = lambda_handler({}, None)
    print(json.dumps(result, indent=2))
