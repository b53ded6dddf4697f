"""Interactive CLI simulator — walk through the OTP registration flow locally."""

import asyncio

from fitflex.config import settings
from fitflex.main import build_otp_service

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print(f"  🏋️  {settings.app_name} — OTP Simulator")
    print(f"{'=' * 52}{RESET}\n")

    print(f"{DIM}Commands: 'send' to request a code, 'switch' to change phone,{RESET}")
    print(f"{DIM}          'quit' to exit; anything else is verified as an OTP{RESET}\n")

    service = build_otp_service(settings)
    if not service.demo_mode:
        print(f"{DIM}USE_TWILIO is on — codes are sent by SMS{RESET}\n")

    phone = input(f"{YELLOW}Enter phone number to simulate: {RESET}").strip()
    if not phone:
        phone = "+15551234567"
    print(f"{DIM}Simulating as {phone}{RESET}\n")

    while True:
        try:
            user_input = input(f"{BLUE}{BOLD}You:{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not user_input:
            continue

        if user_input.lower() == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break

        if user_input.lower() == "switch":
            new_phone = input(f"{YELLOW}New phone number: {RESET}").strip()
            if not new_phone:
                print(f"{DIM}No number given, staying on {phone}{RESET}\n")
                continue
            phone = new_phone
            print(f"{DIM}Switched to {phone}{RESET}\n")
            continue

        if user_input.lower() == "send":
            result = await service.request_challenge(phone)
            colour = GREEN if result.ok else RED
            line = result.message
            if result.code:
                line += f" — code: {BOLD}{result.code}{RESET}"
            print(f"{colour}{BOLD}Server:{RESET} {line}\n")
            continue

        verification = service.verify_challenge(phone, user_input)
        colour = GREEN if verification.verified else RED
        print(f"{colour}{BOLD}Server:{RESET} {verification.message}\n")


if __name__ == "__main__":
    asyncio.run(main())
