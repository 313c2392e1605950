from cachegate.app import main

main()
