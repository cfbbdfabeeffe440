"""
Console front end for the booking configurator.

Walks a customer through the booking steps against a running backend,
keeping the draft in the on-disk cache so an interrupted session resumes
where it stopped.

Usage:
    python main.py
    python main.py --single-page
    python main.py --api-url http://localhost:3000
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from photobook.config import settings
from photobook.configurator import BookingConfigurator, open_configurator
from photobook.flow.validators import is_outdoor
from photobook.submission import SubmissionError
from photobook.tools.booking_api import BookingApiError
from photobook.utils import format_price

logger = logging.getLogger(__name__)

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def _rp(amount: int) -> str:
    return f"{settings.pricing.currency_label} {format_price(amount)}"


class SessionQuit(Exception):
    """Raised when the customer types quit."""


class ConsoleSession:
    """Prompts for each step of a BookingConfigurator in the terminal."""

    def __init__(self, configurator: BookingConfigurator) -> None:
        self.cfg = configurator

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def ask(self, prompt: str, current: str = "") -> Optional[str]:
        """Read one answer. Empty keeps ``current``; 'back' returns None."""
        hint = f" [{current}]" if current else ""
        answer = input(f"{BLUE}{prompt}{hint}: {RESET}").strip()
        if answer.lower() in ("quit", "exit", "q"):
            raise SessionQuit
        if answer.lower() == "back":
            return None
        return answer or current

    async def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  PHOTO SESSION BOOKING{RESET}")
        print(f"{BOLD}  Session: {self.cfg.session_id}{RESET}")
        print(f"{BOLD}  Type 'back' to return to the previous step, 'quit' to exit{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        try:
            while True:
                step = self.cfg.current_step
                title = self.cfg.flow.current_definition.title
                print(f"\n{BOLD}Step {step}/{self.cfg.flow.total_steps}: {title}{RESET}")
                keep_going = await self._prompt_step(step)
                if not keep_going:
                    self.cfg.prev()
                    continue
                if self.cfg.flow.is_last_step():
                    if await self._submit():
                        return
                    continue
                moved_to = self.cfg.next()
                for err in self.cfg.flow.errors_for(step) if moved_to == step else []:
                    print(f"{RED}  {err.field}: {err.message}{RESET}")
        except (SessionQuit, KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Session ended. Your progress is saved.{RESET}")

    async def _prompt_step(self, step: int) -> bool:
        if self.cfg.flow.total_steps == 1:
            for handler in (self._service, self._addons, self._schedule, self._contact, self._payment):
                if not await handler():
                    return False
            return True
        handler = {
            1: self._service,
            2: self._addons,
            3: self._schedule,
            4: self._contact,
            5: self._payment,
        }[step]
        return await handler()

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    async def _service(self) -> bool:
        for i, service in enumerate(self.cfg.services, 1):
            price = service.base_price - service.discount_value
            print(f"  {i}. {service.name} - {_rp(price)}")
        current = self.cfg.draft.service
        answer = self.ask("Choose a service number", current.name if current else "")
        if answer is None:
            return False
        if answer.isdigit() and 1 <= int(answer) <= len(self.cfg.services):
            await self.cfg.select_service(self.cfg.services[int(answer) - 1].id)
        self.system_log(f"Subtotal: {_rp(self.cfg.store.subtotal_for_coupon)}")
        return True

    async def _addons(self) -> bool:
        while self.cfg.addons:
            selected = self.cfg.draft.addons
            for i, addon in enumerate(self.cfg.addons, 1):
                qty = selected[addon.id].quantity if addon.id in selected else 0
                print(f"  {i}. {addon.name} - {_rp(addon.price)} x{qty}")
            answer = self.ask("Add-on number to toggle, '<number> <qty>' to set quantity, Enter to continue")
            if answer is None:
                return False
            if not answer:
                break
            parts = answer.split()
            try:
                addon = self.cfg.addons[int(parts[0]) - 1]
                if len(parts) == 2:
                    self.cfg.set_addon_quantity(addon.id, int(parts[1]))
                else:
                    self.cfg.toggle_addon(addon.id)
            except (ValueError, IndexError):
                print(f"{RED}  Not a valid choice{RESET}")
        return await self._coupon()

    async def _coupon(self) -> bool:
        for suggestion in self.cfg.suggestions:
            self.system_log(f"Available coupon: {suggestion.code} {suggestion.description or ''}")
        answer = self.ask("Coupon code (Enter to skip, '-' to remove)", self.cfg.draft.coupon_code)
        if answer is None:
            return False
        if answer == "-":
            self.cfg.remove_coupon()
        elif answer and answer != self.cfg.draft.coupon_code:
            result = await self.cfg.apply_coupon(answer)
            if result.applied:
                self.say(f"Coupon applied: -{_rp(result.discount_amount)}")
            elif result.message:
                print(f"{YELLOW}  {result.message}{RESET}")
        self.system_log(f"Total: {_rp(self.cfg.draft.totals.total_price)}")
        return True

    async def _schedule(self) -> bool:
        draft = self.cfg.draft
        date = self.ask("Date (YYYY-MM-DD)", draft.date)
        if date is None:
            return False
        time = self.ask("Time (HH:MM)", draft.time)
        if time is None:
            return False
        location = draft.location_link
        if is_outdoor(draft.service_name):
            location = self.ask("Location link", draft.location_link)
            if location is None:
                return False
        self.cfg.set_schedule(date=date, time=time, location_link=location)
        return True

    async def _contact(self) -> bool:
        draft = self.cfg.draft
        name = self.ask("Full name", draft.name)
        if name is None:
            return False
        whatsapp = self.ask("WhatsApp number", draft.whatsapp)
        if whatsapp is None:
            return False
        notes = self.ask("Notes", draft.notes)
        if notes is None:
            return False
        self.cfg.set_contact(name=name, whatsapp=whatsapp, notes=notes)
        return True

    async def _payment(self) -> bool:
        bank = self.cfg.payment_settings
        if bank is not None:
            self.system_log(f"Transfer to {bank.bank_name} {bank.account_number} a.n. {bank.account_name}")
        self.system_log(f"Total: {_rp(self.cfg.draft.totals.total_price)}")
        dp = self.ask("Down payment amount", self.cfg.draft.dp_amount)
        if dp is None:
            return False
        self.cfg.set_payment(dp)
        self.system_log(f"Remaining balance: {_rp(self.cfg.remaining_balance)}")

        current = self.cfg.draft.proof_file
        path = self.ask("Path to transfer proof image", current.filename if current else "")
        if path is None:
            return False
        if path and (current is None or path != current.filename):
            self._attach(Path(path))
        return True

    def _attach(self, path: Path) -> None:
        try:
            content = path.read_bytes()
        except OSError as e:
            print(f"{RED}  Cannot read {path}: {e}{RESET}")
            return
        content_type = MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")
        if not self.cfg.attach_proof(path.name, content, content_type):
            for err in self.cfg.flow.errors_for(self.cfg.current_step):
                print(f"{RED}  {err.field}: {err.message}{RESET}")

    async def _submit(self) -> bool:
        try:
            result = await self.cfg.submit()
        except SubmissionError as e:
            print(f"{RED}  {e.message}{RESET}")
            for err in e.errors:
                print(f"{RED}  {err.field}: {err.message}{RESET}")
            return False
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        self.say(f"Booking confirmed: {result.booking_id}")
        if result.whatsapp_link:
            self.say(f"Send your confirmation on WhatsApp: {result.whatsapp_link}")
        else:
            self.say(result.message)
        print(f"{DIM}  Step trace: {' -> '.join(map(str, self.cfg.flow.get_step_trace()))}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        return True


async def _main(args: argparse.Namespace) -> None:
    configurator = open_configurator(
        api_url=args.api_url, single_page=args.single_page, persist=not args.no_cache
    )
    try:
        await configurator.start()
    except BookingApiError as e:
        logger.error("Startup failed: %s", e)
        print(f"{RED}Cannot load the service catalog: {e.message}{RESET}")
        await configurator.close()
        return
    try:
        await ConsoleSession(configurator).run()
    finally:
        await configurator.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Photo session booking configurator")
    parser.add_argument("--api-url", default=None, help="Booking backend base URL")
    parser.add_argument("--single-page", action="store_true", help="Collect every field on one page")
    parser.add_argument("--no-cache", action="store_true", help="Do not persist the draft to disk")
    asyncio.run(_main(parser.parse_args()))
