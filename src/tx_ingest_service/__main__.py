from tx_ingest_service.main import run

run()
