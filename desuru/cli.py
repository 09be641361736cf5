import click
import sys
from pathlib import Path

from . import __version__
from .config.constants import LOG_DIR, DEFAULT_PORT, DEFAULT_INSTANCES, DEFAULT_MEMORY_LIMIT
from .core.config_manager import ConfigManager
from .core.diagnostics import print_server_info
from .core.exceptions import DesuruError
from .core.models import DeploymentContext
from .core.pipeline import Deployer
from .core.utils import (
    print_header, print_info, print_error, print_success, print_warning, print_step,
    setup_log_file, close_log_file, log_to_file, reset_step_counter
)
from .core.validator import ParameterValidator


class DeployCommand(click.Command):
    """click command that prints usage errors on stdout"""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as e:
            e.show(file=sys.stdout)
            sys.exit(e.exit_code)


@click.command(cls=DeployCommand, context_settings={'help_option_names': ['--help']})
@click.version_option(version=__version__)
@click.option('--app', 'app_name', required=True, help='Application name for PM2 and the nginx site')
@click.option('--domain', required=True, help='Domain name or IP address')
@click.option('--port', help=f'Application port (default: {DEFAULT_PORT})')
@click.option('--ssl', is_flag=True, help="Enable SSL with Let's Encrypt")
@click.option('--email', help='Email for the SSL certificate (required with --ssl)')
@click.option('--instances', help=f"PM2 instances, a number or 'max' (default: {DEFAULT_INSTANCES})")
@click.option('--memory', help=f'Memory restart limit such as 500M or 1G (default: {DEFAULT_MEMORY_LIMIT})')
def cli(app_name, domain, port, ssl, email, instances, memory):
    """
    desuru - Universal JavaScript framework deployment

    Run from your project's root directory (where package.json lives) as root.
    Detects the framework, installs Node.js/Nginx/PM2 when missing, builds the
    project, starts it under PM2 and puts Nginx (optionally with SSL) in front.

    Example: sudo desuru --app blog --domain myblog.com

    Example: sudo desuru --app api --domain api.example.com --port 8080 --ssl --email admin@example.com

    Example: sudo desuru --app webapp --domain app.com --instances max --memory 1G
    """
    reset_step_counter()
    print_header("DESURU")
    print_info("Universal JavaScript Framework Deployment")
    click.echo()

    project_dir = Path.cwd()
    context = None
    log_file = None

    try:
        config_manager = ConfigManager(project_dir)
        config_manager.load_config()

        print_step("Validating input parameters...")
        validator = ParameterValidator()
        params = validator.validate(
            app_name=app_name,
            domain=domain,
            port=config_manager.resolve('port', port, DEFAULT_PORT),
            ssl=config_manager.resolve_flag('ssl', ssl),
            email=config_manager.resolve('email', email, None),
            instances=config_manager.resolve('instances', instances, DEFAULT_INSTANCES),
            memory=config_manager.resolve('memory', memory, DEFAULT_MEMORY_LIMIT)
        )
        print_success("All input parameters validated successfully")

        log_file = setup_log_file(params.app_name, LOG_DIR)
        log_to_file(f"Command line: desuru {' '.join(sys.argv[1:])}")

        print_server_info()
        print_header("DEPLOYMENT CONFIGURATION")
        print_info(f"App Name:     {params.app_name}")
        print_info(f"Domain:       {params.domain}")
        print_info(f"Port:         {params.port}")
        print_info(f"SSL:          {str(params.ssl).lower()}")
        print_info(f"Instances:    {params.instances}")
        print_info(f"Memory Limit: {params.memory}")
        print_info(f"Log File:     {log_file}")
        click.echo()

        context = DeploymentContext(params=params, project_dir=project_dir, log_file=log_file)
        context = Deployer().run(context)
        print_summary(context)

    except KeyboardInterrupt:
        print_warning("Deployment interrupted by user")
        sys.exit(1)

    except DesuruError as e:
        print_error(str(e))
        for hint in e.hints:
            print_info(hint)
        if context is not None:
            print_error(f"Deployment failed with {context.state.errors + 1} error(s)")
        if log_file is not None:
            print_info(f"For troubleshooting, run: tail -50 {log_file}")
        sys.exit(1)

    finally:
        close_log_file()


def print_summary(context: DeploymentContext) -> None:
    params = context.params
    profile = context.profile
    state = context.state

    print_header("DEPLOYMENT COMPLETED")
    print_success(f"Your application is now live: http://{params.domain}")
    if context.ssl_active:
        print_success(f"Your application is now live: https://{params.domain}")

    print_header("APPLICATION DETAILS")
    print_info(f"Framework:        {profile.framework_name}")
    print_info(f"Framework Type:   {profile.category.value}")
    print_info(f"Application Name: {params.app_name}")
    print_info(f"Port:             {context.port}")
    if profile.uses_integrated_server:
        print_info("Start Method:     npm start (built-in server)")
    elif profile.entry_point:
        print_info(f"Main File:        {profile.entry_point}")
    if profile.artifact_dir:
        print_info(f"Build Directory:  {profile.artifact_dir}")
    print_info(f"Serve Static:     {str(profile.serves_static).lower()}")
    if context.repository:
        print_info(f"Repository:       {context.repository['name']} ({context.repository['branch']} @ {context.repository['commit']})")

    print_header("SERVER CONFIGURATION")
    for component in state.components.values():
        freshness = "installed now" if component.freshly_installed else "already present"
        print_info(f"{component.name}: {component.version} ({freshness})")
    print_info(f"SSL Enabled:      {str(context.ssl_active).lower()}")
    if context.ssl_expiry:
        print_info(f"SSL Expires:      {context.ssl_expiry}")
    print_info(f"Firewall:         {context.firewall_status or 'not configured'}")
    if profile.category.needs_supervisor:
        print_info(f"PM2 Instances:    {params.instances}")
        print_info(f"Memory Limit:     {params.memory}")
        if context.process_status:
            print_info(f"PM2 Status:       {context.process_status}")
        if context.process_memory_mb is not None:
            print_info(f"Memory Usage:     {context.process_memory_mb}MB")
    print_info(f"Package Manager:  {context.package_manager or 'npm'}")

    print_header("MANAGEMENT COMMANDS")
    if profile.category.needs_supervisor:
        click.echo(f"  pm2 logs {params.app_name}      # View real-time logs")
        click.echo(f"  pm2 restart {params.app_name}   # Restart application")
        click.echo(f"  pm2 stop {params.app_name}      # Stop application")
        click.echo("  pm2 list                # List all processes")
    click.echo("  systemctl status nginx  # Check Nginx status")
    click.echo("  nginx -t                # Test Nginx config")

    print_header("UPDATE YOUR APPLICATION")
    click.echo(f"  cd {context.project_dir}")
    click.echo("  git pull")
    click.echo(f"  {context.package_manager or 'npm'} install")
    if profile.has_build:
        click.echo(f"  {' '.join(profile.build_command)}")
    if profile.category.needs_supervisor:
        click.echo(f"  pm2 restart {params.app_name}")
    else:
        click.echo("  systemctl reload nginx")

    print_header("DEBUGGING RESOURCES")
    print_info(f"Deployment Log: {context.log_file}")
    print_info(f"Error Count:    {state.errors} errors encountered")
    if state.errors:
        print_warning("Some errors occurred but deployment continued, review the log file for details")
    if not context.ssl_active:
        print_warning("HTTPS/SSL not enabled - consider enabling for production")
    if context.firewall_status != 'active':
        print_warning("Firewall not active - consider enabling for production")

    print_success("Deployment completed successfully!")


if __name__ == '__main__':
    cli()
