from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter(tags=["ui"])

UPLOAD_PAGE = """
<html>
    <head><title>Invoice OCR</title></head>
    <body style="font-family: Arial; max-width: 720px; margin: 40px auto;">
        <h2>Invoice OCR</h2>
        <form id="upload">
            <input type="file" name="invoice" accept="image/jpeg,image/png,image/webp" required>
            <button type="submit">Process</button>
        </form>
        <pre id="result"></pre>
        <h3>Statistics</h3>
        <table id="overview"></table>
        <h4>By vendor</h4>
        <ul id="by-vendor"></ul>
        <h4>By month</h4>
        <ul id="by-month"></ul>
        <h4>By amount range</h4>
        <ul id="by-amount-range"></ul>
        <h3>Invoices</h3>
        <ul id="invoices"></ul>
        <script>
            async function loadInvoices() {
                const r = await fetch("/api/invoice/list");
                const body = await r.json();
                const list = document.getElementById("invoices");
                list.innerHTML = "";
                for (const inv of body.data) {
                    const li = document.createElement("li");
                    li.textContent = `#${inv.id} ${inv.vendor_name || "N/A"} - `
                        + `${inv.currency || ""} ${inv.total_amount} (${inv.invoice_date || "N/A"})`;
                    list.appendChild(li);
                }
            }
            function fillList(id, rows, label) {
                const list = document.getElementById(id);
                list.innerHTML = "";
                for (const row of rows) {
                    const li = document.createElement("li");
                    li.textContent = label(row);
                    list.appendChild(li);
                }
            }
            async function loadStatistics() {
                const r = await fetch("/api/invoice/statistics");
                const stats = (await r.json()).data;
                const overview = stats.overview;
                const table = document.getElementById("overview");
                table.innerHTML = "";
                for (const [name, key] of [
                    ["Total invoices", "total_invoices"], ["Total amount", "total_amount"],
                    ["Average amount", "average_amount"], ["Vendors", "unique_vendors"],
                    ["Smallest invoice", "min_amount"], ["Largest invoice", "max_amount"],
                ]) {
                    const tr = table.insertRow();
                    tr.insertCell().textContent = name;
                    tr.insertCell().textContent = overview[key] || 0;
                }
                fillList("by-vendor", stats.by_vendor,
                    (row) => `${row.vendor_name}: ${row.count} invoice(s), ${row.total_amount}`);
                fillList("by-month", stats.by_month,
                    (row) => `${row.month}: ${row.count} invoice(s), ${row.total_amount}`);
                fillList("by-amount-range", stats.by_amount_range,
                    (row) => `${row.amount_range}: ${row.count} invoice(s)`);
            }
            document.getElementById("upload").addEventListener("submit", async (e) => {
                e.preventDefault();
                const result = document.getElementById("result");
                result.textContent = "Processing...";
                const r = await fetch("/api/invoice/process", {method: "POST", body: new FormData(e.target)});
                result.textContent = JSON.stringify(await r.json(), null, 2);
                loadInvoices();
                loadStatistics();
            });
            loadInvoices();
            loadStatistics();
        </script>
    </body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
async def upload_page():
    """Minimal upload form, statistics and invoice list"""
    return UPLOAD_PAGE
