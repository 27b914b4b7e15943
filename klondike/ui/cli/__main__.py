from .cli_game import main

main()
