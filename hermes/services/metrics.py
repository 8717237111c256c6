from prometheus_client import Counter, Gauge

candle_updates_counter = Counter("hermes_candle_updates_total", "Candle updates processed")
signals_counter = Counter("hermes_signals_total", "Signals triggered", ["side"])
alerts_counter = Counter("hermes_alerts_total", "Static price alerts triggered")
positions_opened_counter = Counter("hermes_positions_opened_total", "Positions opened", ["side"])
positions_closed_counter = Counter("hermes_positions_closed_total", "Positions closed", ["exit_signal"])
orders_counter = Counter("hermes_orders_total", "Exchange orders placed")
order_failures_counter = Counter("hermes_order_failures_total", "Exchange orders that failed")
notification_failures_counter = Counter("hermes_notification_failures_total", "Notifications that failed to send")
tracked_symbols_gauge = Gauge("hermes_tracked_symbols", "Symbols tracked in the session")
