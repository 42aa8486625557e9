#!/usr/bin/env python3
"""
Wallet Sign-In Example

Demonstrates the complete challenge-response flow with a throwaway
Ethereum key pair standing in for the user's wallet.

Features:
1. Challenge issuance for an address
2. personal_sign by the "wallet"
3. Verification and session establishment
4. Replay rejection
5. Session checks through the HTTP-style handlers
6. Attempt trace export
"""

from returns.result import Failure, Success

from eth_account import Account
from eth_account.messages import encode_defunct

from sovereign_auth import AuthConfig, AuthHandlers, create_coordinator
from sovereign_auth.logging import configure_logging


def wallet_sign(account, message: str) -> str:
    """What a browser wallet's personal_sign returns."""
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


def main():
    """Demonstrate wallet sign-in."""

    configure_logging(level="WARNING")

    print("=" * 70)
    print("SovereignAuth - Wallet Sign-In")
    print("=" * 70)
    print()

    wallet = Account.create()
    config = AuthConfig(domain="builder.example", statement="Sign in to Sovereign Builder Kit")
    attempts = []

    coordinator = create_coordinator(config)
    coordinator.on_attempt = attempts.append

    with coordinator:
        # ======================================================================
        # EXAMPLE 1: Request a challenge
        # ======================================================================
        print("1. Request Challenge")
        print("-" * 40)

        challenge = coordinator.request_challenge(wallet.address).unwrap()
        print(f"   Address: {wallet.address}")
        print(f"   Nonce:   {challenge.nonce[:8]}...")
        print()
        for line in challenge.message.split("\n"):
            print(f"   | {line}")
        print()

        # ======================================================================
        # EXAMPLE 2: Sign and complete
        # ======================================================================
        print("2. Sign and Complete")
        print("-" * 40)

        signature = wallet_sign(wallet, challenge.message)
        result = coordinator.complete_challenge(challenge.message, signature)

        if isinstance(result, Success):
            session = result.unwrap()
            print(f"   [OK] Signed in as {session.identity}")
            print(f"   Session expires at {session.expires_at.isoformat()}")
        else:
            print(f"   [FAIL] {result.failure()}")
            return
        print()

        # ======================================================================
        # EXAMPLE 3: Replay the same signature
        # ======================================================================
        print("3. Replay Attempt")
        print("-" * 40)

        replay = coordinator.complete_challenge(challenge.message, signature)
        if isinstance(replay, Failure):
            print(f"   [OK] Replay rejected: {replay.failure()}")
        print()

        # ======================================================================
        # EXAMPLE 4: Handlers
        # ======================================================================
        print("4. Session via Handlers")
        print("-" * 40)

        handlers = AuthHandlers(coordinator=coordinator)
        headers = {"x-session-id": session.session_id}

        response = handlers.check_session(headers)
        print(f"   GET  /auth/session -> {response.status} {response.body}")

        response = handlers.logout(headers)
        print(f"   POST /auth/logout  -> {response.status} {response.body}")

        response = handlers.check_session(headers)
        print(f"   GET  /auth/session -> {response.status} {response.body}")
        print()

        # ======================================================================
        # EXAMPLE 5: Attempt traces
        # ======================================================================
        print("5. Attempt Traces")
        print("-" * 40)

        for attempt in attempts:
            trace = attempt.get_trace()
            states = [trace[0].from_state.name] + [t.to_state.name for t in trace]
            print(f"   {' -> '.join(states)}")
        print()
        print(attempts[1].export_trace_json())

    print()
    print("=" * 70)
    print("Done")
    print("=" * 70)


if __name__ == "__main__":
    main()
