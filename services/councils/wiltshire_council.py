"""
Wiltshire Council - collection calendar scraper.

The council calendar only returns one month per request, so a rolling
twelve-month window is fetched month by month.
"""

import logging
from datetime import date, datetime

import requests
from bs4 import BeautifulSoup

import config
from services.common.throttle import throttle
from services.councils.common import (
    AbstractGetBinDataClass,
    check_postcode,
    check_uprn,
    date_format,
)

logger = logging.getLogger(__name__)

CALENDAR_URL = "https://ilambassadorformsprod.azurewebsites.net/wastecollectiondays/wastecollectioncalendar"
REQUEST_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-GB,en;q=0.9",
    "Cache-Control": "no-cache",
    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
    "Origin": "https://ilambassadorformsprod.azurewebsites.net",
    "Referer": "https://ilambassadorformsprod.azurewebsites.net/wastecollectiondays/index",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "X-Requested-With": "XMLHttpRequest",
}
MONTHS_TO_FETCH = 12


class CalendarFetchError(RuntimeError):
    pass


def rolling_months(start: date, count: int = MONTHS_TO_FETCH) -> list[tuple[int, int]]:
    """(month, year) pairs for `count` months beginning with start's month."""
    months = []
    for offset in range(count):
        index = start.month - 1 + offset
        months.append((index % 12 + 1, start.year + index // 12))
    return months


def parse_calendar_html(html: str) -> list[dict]:
    """
    Collections in one month's calendar. Cells missing a date or label, or with
    an unreadable date, are skipped.
    """
    soup = BeautifulSoup(html, features="html.parser")
    bins = []
    for cell in soup.find_all("div", {"class": "cal-inner"}):
        if not cell.find("div", {"class": "events-list"}):
            continue

        date_span = cell.find("span", class_="day-no")
        if not date_span or "data-cal-date" not in date_span.attrs:
            continue
        try:
            collection_date = datetime.strptime(date_span["data-cal-date"], "%Y-%m-%dT%H:%M:%S")
        except ValueError:
            logger.debug("Skipping calendar cell with date %r", date_span["data-cal-date"])
            continue

        label = cell.select_one(".rc-event-container span")
        if not label:
            continue

        # "Household waste and Recycling" is two collections on one day
        for bin_type in label.get_text().strip().split(" and "):
            bin_type = bin_type.strip()
            if bin_type:
                bins.append({"type": bin_type, "collectionDate": collection_date.strftime(date_format)})
    return bins


class CouncilClass(AbstractGetBinDataClass):
    def parse_data(self, page: str, **kwargs) -> dict:
        user_postcode = kwargs.get("postcode")
        check_postcode(user_postcode)
        user_uprn = kwargs.get("uprn")
        check_uprn(user_uprn)
        user_uprn = str(user_uprn).strip().zfill(12)

        session = requests.Session()
        session.headers.update(REQUEST_HEADERS)

        data_bins = {"bins": []}
        for cal_month, cal_year in rolling_months(date.today()):
            throttle("wiltshire", 0.2, 0.5)
            form = {
                "Month": cal_month,
                "Year": cal_year,
                "Postcode": user_postcode,
                "Uprn": user_uprn,
            }
            try:
                response = session.post(CALENDAR_URL, data=form, timeout=config.COUNCIL_HTTP_TIMEOUT_SECONDS)
            except requests.RequestException as e:
                raise CalendarFetchError(f"Connection failed for {cal_month}/{cal_year}: {e}") from e

            if response.status_code != 200:
                raise CalendarFetchError(
                    f"Error retrieving data for {cal_month}/{cal_year}! Status: {response.status_code}"
                )

            for entry in parse_calendar_html(response.text):
                if entry not in data_bins["bins"]:
                    data_bins["bins"].append(entry)

        logger.info("Wiltshire calendar gave %d collections", len(data_bins["bins"]))
        return data_bins
