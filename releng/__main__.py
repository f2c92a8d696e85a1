from releng.cli.app import main

main()
