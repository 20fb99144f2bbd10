"""
CLI entry point, when used as a module: `python -m kuberest`.

Useful for debugging in the IDEs (use the start-mode "Module", module "kuberest").
"""
from kuberest import cli

if __name__ == '__main__':
    cli.main()
