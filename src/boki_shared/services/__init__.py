"""Domain services: order lifecycle, kiosk cashier flow, bans, sizes and reports."""
