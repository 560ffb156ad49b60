#!/usr/bin/env python3
"""
One-time script to obtain a Google OAuth refresh token for image storage.

Run this script locally once to get a refresh token, then add it to your .env file.

Usage:
    python scripts/get_token.py

Requirements:
    - GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set in .env
    - Or pass them as arguments: python scripts/get_token.py --client-id=XXX --client-secret=YYY
"""
import argparse
import os
import sys

from dotenv import load_dotenv
from google_auth_oauthlib.flow import InstalledAppFlow

SCOPES = ["https://www.googleapis.com/auth/devstorage.read_write"]


def main():
    parser = argparse.ArgumentParser(description="Get Google OAuth refresh token for Cloud Storage")
    parser.add_argument("--client-id", help="Google OAuth Client ID")
    parser.add_argument("--client-secret", help="Google OAuth Client Secret")
    args = parser.parse_args()

    load_dotenv()
    client_id = args.client_id or os.getenv("GOOGLE_CLIENT_ID")
    client_secret = args.client_secret or os.getenv("GOOGLE_CLIENT_SECRET")

    if not client_id or not client_secret:
        print("Error: GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required.")
        print()
        print("Either:")
        print("  1. Set them in .env file, or")
        print("  2. Pass them as arguments:")
        print("     python scripts/get_token.py --client-id=XXX --client-secret=YYY")
        sys.exit(1)

    client_config = {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }

    flow = InstalledAppFlow.from_client_config(client_config, SCOPES)

    # Allow HTTP for localhost (required for manual copy-paste flow)
    os.environ["OAUTHLIB_INSECURE_TRANSPORT"] = "1"

    print("=" * 60)
    print("Cloud Storage OAuth Setup")
    print("=" * 60)
    print()
    print("Open the URL below in a browser and authorize access to the bucket.")
    print("You'll be redirected to a localhost URL that won't load.")
    print("Copy the FULL redirect URL and paste it back here.")
    print()

    flow.redirect_uri = "http://localhost:8080/"
    auth_url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
    )

    print(auth_url)
    print()

    redirect_response = input("Paste the full redirect URL here: ").strip()
    flow.fetch_token(authorization_response=redirect_response)
    credentials = flow.credentials

    print()
    print("=" * 60)
    print("SUCCESS! Add the following to your .env file:")
    print("=" * 60)
    print()
    print(f"GOOGLE_REFRESH_TOKEN={credentials.refresh_token}")
    print("STORAGE_BUCKET=<your bucket name>")
    print()
    print("=" * 60)


if __name__ == "__main__":
    main()
