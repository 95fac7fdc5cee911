from media_sorter.main import main

if __name__ == "__main__":
    main()
