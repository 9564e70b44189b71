from content_mapper.cli import main

main()
