"""Sample automation inserted into an empty database."""

SAMPLE_AUTOMATION_ID = "1"
SAMPLE_AUTOMATION_NAME = "Sample Automation"
SAMPLE_AUTOMATION_DESCRIPTION = "This is a sample automation to demonstrate how Rpage works."

SAMPLE_SCRIPT = '''\
import base64
from datetime import datetime, timezone


async def run():
    console.log("Starting Wikipedia search automation...")

    console.log("Launching browser")
    browser = await chromium.launch(headless=True)
    page = await browser.new_page()

    console.log("Navigating to Wikipedia")
    await page.goto("https://en.wikipedia.org/")

    console.log("Searching for 'apples'")
    await page.fill("input#searchInput", "apples")
    await page.press("input#searchInput", "Enter")

    console.log("Waiting for search results")
    await page.wait_for_load_state("networkidle")

    title = await page.title()
    console.log("Page title:", title)

    first_paragraph = await page.eval_on_selector("#mw-content-text p", "el => el.textContent")
    console.log("Content preview:", first_paragraph[:150] + "...")

    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    filename = f"wikipedia-apples-{stamp}.png"
    target = fs.path(filename)
    console.log("Taking screenshot and saving to:", str(target))
    image = await page.screenshot(path=str(target), full_page=False)

    console.log("Closing browser")
    await browser.close()

    console.log("Automation completed successfully")
    return {
        "title": title,
        "search_term": "apples",
        "content": first_paragraph,
        "screenshot_path": filename,
        "screenshot_name": f"Wikipedia search for apples ({stamp})",
        "screenshot": {
            "name": filename,
            "format": "png",
            "image_data": base64.b64encode(image).decode("ascii"),
        },
        "timestamp": stamp,
    }
'''
