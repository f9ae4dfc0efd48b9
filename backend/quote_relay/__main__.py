from quote_relay.main import main

main()
