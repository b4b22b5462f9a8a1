from betty.cli import main

main()
